# pulse/models/domain/calendar_domain.py
"""
Calendar Domain Models
Events as returned by the Calendar events.list endpoint.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class EventAttendee:
    email: str
    display_name: str | None = None
    is_self: bool = False


class CalendarEvent:
    """Domain model for calendar events."""

    def __init__(self, data: dict):
        self.id = data.get("id")
        self.summary = (data.get("summary") or "").strip()
        self.status = data.get("status", "confirmed")
        self.start_data = data.get("start") or {}
        self.start_time = self._parse_datetime(self.start_data)
        self.attendees = self._parse_attendees(data.get("attendees") or [])

    def _parse_datetime(self, dt_data: dict) -> datetime | None:
        """Parse a Google start/end object; timed events win over all-day dates."""
        if not dt_data:
            return None

        if dt_data.get("dateTime"):
            try:
                parsed = datetime.fromisoformat(dt_data["dateTime"].replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)

        if dt_data.get("date"):
            try:
                return datetime.strptime(dt_data["date"], "%Y-%m-%d").replace(tzinfo=UTC)
            except ValueError:
                return None

        return None

    def _parse_attendees(self, attendees: list) -> list[EventAttendee]:
        parsed = []
        for attendee in attendees:
            email = (attendee.get("email") or "").strip().lower()
            if not email:
                continue
            parsed.append(
                EventAttendee(
                    email=email,
                    display_name=attendee.get("displayName") or None,
                    is_self=bool(attendee.get("self", False)),
                )
            )
        return parsed

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    def has_start(self) -> bool:
        """Whether the payload carried any start value, parseable or not."""
        return bool(self.start_data.get("dateTime") or self.start_data.get("date"))

    def is_upcoming(self, now: datetime | None = None) -> bool:
        """Check if event starts in the future."""
        if not self.start_time:
            return False
        return self.start_time > (now or datetime.now(UTC))

    def __repr__(self) -> str:
        return f"CalendarEvent(id={self.id!r}, summary={self.summary!r})"
