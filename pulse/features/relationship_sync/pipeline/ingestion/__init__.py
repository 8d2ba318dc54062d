"""
Ingestion package: Gmail and Calendar fetchers.
"""

from .calendar_fetcher import CalendarFetcher
from .email_fetcher import EmailFetcher

__all__ = ["CalendarFetcher", "EmailFetcher"]
