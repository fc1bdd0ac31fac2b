"""
Clinic Metrics backend package.

Metric derivation core for the clinic management dashboards (finance,
operations and commercial views) plus the FastAPI service that reads the
dashboard views and serves the derived records.
"""

__version__ = "1.0.0"
