import re
from datetime import UTC, datetime

import pytest

from pulse.services.calendar.google_client import GoogleCalendarService
from pulse.services.gmail.google_client import GoogleGmailService
from pulse.services.google_api_client import GoogleAPIError

GMAIL_LIST_URL = re.compile(r"https://gmail\.googleapis\.com/gmail/v1/users/me/messages(\?.*)?$")
GMAIL_MESSAGE_URL = re.compile(r"https://gmail\.googleapis\.com/gmail/v1/users/me/messages/msg-1(\?.*)?$")
CALENDAR_EVENTS_URL = re.compile(
    r"https://www\.googleapis\.com/calendar/v3/calendars/primary/events(\?.*)?$"
)


@pytest.mark.asyncio
async def test_gmail_list_message_ids_returns_page(httpx_mock):
    service = GoogleGmailService()
    httpx_mock.add_response(
        method="GET",
        url=GMAIL_LIST_URL,
        json={"messages": [{"id": "msg-1", "threadId": "t-1"}, {"id": "msg-2"}], "nextPageToken": "page-2"},
    )

    ids, next_page = await service.list_message_ids("token", "after:2024/01/01", page_token="page-1")
    await service.close()

    assert ids == ["msg-1", "msg-2"]
    assert next_page == "page-2"

    request = httpx_mock.get_request()
    assert request.headers["Authorization"] == "Bearer token"
    assert request.url.params["q"] == "after:2024/01/01"
    assert request.url.params["maxResults"] == "500"
    assert request.url.params["pageToken"] == "page-1"


@pytest.mark.asyncio
async def test_gmail_metadata_requests_only_needed_headers(httpx_mock):
    service = GoogleGmailService()
    httpx_mock.add_response(
        method="GET",
        url=GMAIL_MESSAGE_URL,
        json={
            "id": "msg-1",
            "threadId": "thread-1",
            "snippet": "Lunch next week?",
            "payload": {
                "headers": [
                    {"name": "From", "value": "Ana Lima <ana@example.com>"},
                    {"name": "To", "value": "me@example.com"},
                    {"name": "Subject", "value": "Lunch"},
                    {"name": "Date", "value": "Mon, 01 Jan 2024 10:00:00 +0000"},
                ]
            },
        },
    )

    message = await service.get_message_metadata("token", "msg-1")
    await service.close()

    assert message.sender.email == "ana@example.com"
    assert message.recipient.email == "me@example.com"
    assert message.subject == "Lunch"
    assert message.get_sent_datetime() == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    request = httpx_mock.get_request()
    assert request.url.params["format"] == "metadata"
    assert request.url.params.get_list("metadataHeaders") == ["From", "To", "Subject", "Date"]


@pytest.mark.asyncio
async def test_gmail_api_not_enabled_message(httpx_mock):
    service = GoogleGmailService()
    httpx_mock.add_response(
        method="GET",
        url=GMAIL_LIST_URL,
        status_code=403,
        json={
            "error": {
                "code": 403,
                "message": "Gmail API has not been used in project 123 before or it is disabled.",
                "status": "PERMISSION_DENIED",
            }
        },
    )

    with pytest.raises(GoogleAPIError) as exc:
        await service.list_message_ids("token", "after:2024/01/01")
    await service.close()

    assert exc.value.status_code == 403
    assert str(exc.value).startswith("Gmail API is not enabled")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,fragment",
    [
        (401, "authentication expired"),
        (429, "rate limit exceeded"),
        (404, "Google API error (404)"),
    ],
)
async def test_gmail_error_mapping(httpx_mock, status_code, fragment):
    service = GoogleGmailService()
    httpx_mock.add_response(
        method="GET",
        url=GMAIL_LIST_URL,
        status_code=status_code,
        json={"error": {"code": status_code, "message": "Something went wrong"}},
    )

    with pytest.raises(GoogleAPIError) as exc:
        await service.list_message_ids("token", "after:2024/01/01")
    await service.close()

    assert exc.value.status_code == status_code
    assert fragment in str(exc.value)


@pytest.mark.asyncio
async def test_calendar_list_events_requests_single_instances(httpx_mock):
    service = GoogleCalendarService()
    httpx_mock.add_response(
        method="GET",
        url=CALENDAR_EVENTS_URL,
        json={
            "items": [
                {
                    "id": "event-1",
                    "status": "confirmed",
                    "summary": "Standup",
                    "start": {"dateTime": "2024-01-01T10:00:00Z"},
                    "attendees": [{"email": "ana@example.com"}, {"email": "me@example.com", "self": True}],
                },
                {"id": "event-2", "start": {"date": "2024-01-02"}},
            ]
        },
    )

    events, next_page = await service.list_events(
        "token",
        time_min=datetime(2023, 10, 3, tzinfo=UTC),
        time_max=datetime(2024, 1, 31, tzinfo=UTC),
    )
    await service.close()

    assert next_page is None
    assert [e.id for e in events] == ["event-1", "event-2"]
    assert events[0].start_time == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)
    assert events[1].start_time == datetime(2024, 1, 2, tzinfo=UTC)

    params = httpx_mock.get_request().url.params
    assert params["singleEvents"] == "true"
    assert params["orderBy"] == "startTime"
    assert params["timeMin"] == "2023-10-03T00:00:00Z"
    assert params["maxResults"] == "250"


@pytest.mark.asyncio
async def test_calendar_api_not_enabled_message(httpx_mock):
    service = GoogleCalendarService()
    httpx_mock.add_response(
        method="GET",
        url=CALENDAR_EVENTS_URL,
        status_code=403,
        json={"error": {"code": 403, "message": "Google Calendar API has not been used in project 123"}},
    )

    with pytest.raises(GoogleAPIError) as exc:
        await service.list_events("token", datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 2, 1, tzinfo=UTC))
    await service.close()

    assert str(exc.value).startswith("Calendar API is not enabled")
