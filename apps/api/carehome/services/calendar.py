import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    pass


class CalendarClient:
    """
    Thin HTTP client for the external calendar service.

    Events follow the Google Calendar v3 shape (summary, description,
    start/end {dateTime, timeZone}, attendees, location). With no base URL
    configured the client is disabled: calls are logged and return None.
    """

    def __init__(self, base_url: Optional[str], token: Optional[str] = None, calendar_id: str = "primary", timeout: float = 10):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.token = token
        self.calendar_id = calendar_id
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": "carehome-api/1.0"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _events_url(self, event_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/calendars/{self.calendar_id}/events"
        return f"{url}/{event_id}" if event_id else url

    def _request(self, method: str, url: str, json: Optional[dict] = None) -> requests.Response:
        try:
            r = requests.request(method, url, json=json, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise CalendarError(f"Calendar request failed: {e}") from e
        if r.status_code >= 400:
            raise CalendarError(f"Calendar request failed with status {r.status_code}")
        return r

    def create_event(self, event: dict[str, Any]) -> Optional[str]:
        if not self.enabled:
            logger.info("Calendar sync disabled; skipping create for %r", event.get("summary"))
            return None

        body = {
            **event,
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "popup", "minutes": 60},
                ],
            },
        }
        event_id = self._request("POST", self._events_url(), json=body).json().get("id")
        logger.info("Created calendar event %s", event_id)
        return event_id

    def update_event(self, event_id: str, event: dict[str, Any]) -> None:
        if not self.enabled:
            logger.info("Calendar sync disabled; skipping update of %s", event_id)
            return
        self._request("PUT", self._events_url(event_id), json=event)
        logger.info("Updated calendar event %s", event_id)

    def delete_event(self, event_id: str) -> None:
        if not self.enabled:
            logger.info("Calendar sync disabled; skipping delete of %s", event_id)
            return
        self._request("DELETE", self._events_url(event_id))
        logger.info("Deleted calendar event %s", event_id)
