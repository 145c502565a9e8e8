"""Shared slowapi limiter; attached to the app in main.py."""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

RATE_LIMIT_ENABLED = os.environ.get("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Outbound calls to the SQL assistant are the expensive path
ASSISTANT_RATE_LIMIT = os.environ.get("ASSISTANT_RATE_LIMIT", "30/minute")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    enabled=RATE_LIMIT_ENABLED,
)
