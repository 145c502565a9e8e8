# Vendor Analytics API
"""
REST API for invoice and vendor analytics.

Endpoints:
- GET /api/v1/vendor-analytics/* - Vendor scorecards, reliability, trends, risk
- GET /api/v1/stats - Dashboard totals
- GET /api/v1/invoice-trends - Monthly invoice volume and spend
- /api/v1/chat/* - Natural-language-to-SQL assistant proxy
"""
