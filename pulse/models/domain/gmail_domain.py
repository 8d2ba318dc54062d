# pulse/models/domain/gmail_domain.py
"""
Gmail Domain Models
Metadata-only view of a Gmail message: the From/To/Subject/Date headers,
thread id and snippet. Bodies are never requested.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import getaddresses, parsedate_to_datetime


@dataclass(frozen=True, slots=True)
class EmailAddress:
    name: str
    email: str


def parse_email_address(address_str: str | None) -> EmailAddress:
    """
    Parse `"Name" <addr>` or a bare address into an EmailAddress.

    The address is lower-cased and surrounding quotes are stripped from the name.
    """
    addresses = parse_email_addresses(address_str)
    return addresses[0] if addresses else EmailAddress(name="", email="")


def parse_email_addresses(addresses_str: str | None) -> list[EmailAddress]:
    """Parse a comma-separated address header, keeping entries that carry an address."""
    if not addresses_str:
        return []

    addresses = []
    for name, email in getaddresses([addresses_str]):
        email = email.strip().lower()
        if not email or "@" not in email:
            continue
        addresses.append(EmailAddress(name=name.strip().strip('"').strip(), email=email))
    return addresses


class GmailMessageMetadata:
    """Domain model for a message fetched with format=metadata."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.thread_id = data.get("threadId")
        self.snippet = data.get("snippet") or ""
        self.internal_date = data.get("internalDate")
        self.payload = data.get("payload") or {}

        self._parse_headers()

    def _parse_headers(self):
        headers = self.payload.get("headers", [])
        self.headers = {h["name"].lower(): h.get("value", "") for h in headers if h.get("name")}

        self.subject = self.headers.get("subject") or None
        self.sender = parse_email_address(self.headers.get("from"))
        recipients = parse_email_addresses(self.headers.get("to"))
        self.recipient = recipients[0] if recipients else EmailAddress(name="", email="")
        self.date = self.headers.get("date", "").strip()

    def get_internal_datetime(self) -> datetime | None:
        """Gmail's internalDate (epoch milliseconds) as an aware datetime."""
        if not self.internal_date:
            return None
        try:
            timestamp = int(self.internal_date) / 1000
            return datetime.fromtimestamp(timestamp, tz=UTC)
        except (ValueError, TypeError, OverflowError):
            return None

    def get_sent_datetime(self) -> datetime | None:
        """
        When the message was sent.

        Uses the Date header, falling back to internalDate when the header is
        absent. Returns None when neither is available.

        Raises:
            ValueError: If a Date header is present but cannot be parsed
        """
        if not self.date:
            return self.get_internal_datetime()

        try:
            sent_at = parsedate_to_datetime(self.date)
        except (TypeError, IndexError) as e:
            raise ValueError(f"Unparseable Date header: {self.date!r}") from e

        if sent_at is None:
            raise ValueError(f"Unparseable Date header: {self.date!r}")
        if sent_at.tzinfo is None:
            sent_at = sent_at.replace(tzinfo=UTC)
        return sent_at.astimezone(UTC)

    def __repr__(self) -> str:
        return f"GmailMessageMetadata(id={self.id!r}, thread_id={self.thread_id!r})"
