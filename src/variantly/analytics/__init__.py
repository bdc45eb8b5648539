"""Analytics integration used to receive and report experiment events."""

from variantly.analytics.client import Analytics, AnalyticsHandler

__all__ = ["Analytics", "AnalyticsHandler"]
