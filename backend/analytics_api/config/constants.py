"""
Centralized constants for the vendor analytics backend.

Scoring formulas read their reference scales, weights and thresholds from
here. Import from here instead of redefining.
"""

# Reference scales for the metric normalizer
VOLUME_REFERENCE_INVOICES = 50          # 50 invoices in window = 100% volume
EXPOSURE_REFERENCE_AMOUNT = 1_000_000   # 1M currency units = 100% exposure

# Performance scorecard
TARGET_PAYMENT_TERMS_DAYS = 30
DEFAULT_RELIABILITY_SCORE = 50          # used when no payment terms are known

# Payment reliability scorecard
OVERDUE_PENALTY_FACTOR = 2

# Risk scorecard: weights sum to 1.0
RISK_WEIGHTS = {
    'exposure': 0.30,
    'variability': 0.20,
    'timeliness': 0.25,
    'payment': 0.25,
}
TIMELINESS_RISK_FACTOR = 2
PAYMENT_RISK_FACTOR = 3
LATE_INVOICE_DAYS = 30                  # invoiced > 30 days after delivery

# Risk category thresholds (strict greater-than)
RISK_CATEGORY_THRESHOLDS = {
    'High': 70,
    'Medium': 40,
}
RISK_CATEGORIES = ('High', 'Medium', 'Low')

# Growth rate compares the last N trend months with the N before them
GROWTH_WINDOW_MONTHS = 3

# Default lookback windows (months)
PERFORMANCE_WINDOW_MONTHS = 12
RISK_WINDOW_MONTHS = 24
TRENDS_WINDOW_MONTHS = 12
CATEGORY_WINDOW_MONTHS = 12
SUMMARY_WINDOW_MONTHS = 12
INVOICE_TRENDS_MONTHS = 12

# Default result sizes
DEFAULT_SCORECARD_LIMIT = 20
DEFAULT_RELIABILITY_LIMIT = 15
DEFAULT_TOP_VENDORS = 10
DEFAULT_RISK_LIMIT = 20
DEFAULT_CATEGORY_LIMIT = 15
CATEGORY_ROWS_PER_VENDOR = 5
MAX_LIMIT = 500
MAX_WINDOW_MONTHS = 120

UNCATEGORIZED = 'Uncategorized'
