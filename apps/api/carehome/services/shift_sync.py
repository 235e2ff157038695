"""
Side effects of roster publication: external calendar events and caregiver
notices. Everything here is fire-and-forget relative to the roster change:
failures are logged and swallowed, the committed roster state stands.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from carehome.models.caregiver import Caregiver
from carehome.models.location import Location
from carehome.models.roster import RosterEntry
from carehome.services.calendar import CalendarClient
from carehome.services.notifications import Notifier, ShiftNotice

logger = logging.getLogger(__name__)


def _event_body(entry: RosterEntry, caregiver: Caregiver, location: Location) -> dict:
    tz = location.timezone or "Europe/London"
    start = datetime.combine(entry.shift_date, entry.start_time, tzinfo=ZoneInfo(tz))
    end = datetime.combine(entry.shift_date, entry.end_time, tzinfo=ZoneInfo(tz))
    # overnight shift
    if end <= start:
        end += timedelta(days=1)

    description = f"Care shift at {location.name}"
    if entry.notes:
        description += f"\n\nNotes: {entry.notes}"

    return {
        "summary": f"Care Shift - {caregiver.full_name}",
        "description": description,
        "start": {"dateTime": start.isoformat(), "timeZone": tz},
        "end": {"dateTime": end.isoformat(), "timeZone": tz},
        "attendees": [{"email": caregiver.email}],
        "location": location.address,
    }


class ShiftSync:
    def __init__(self, calendar: CalendarClient, notifier: Notifier):
        self.calendar = calendar
        self.notifier = notifier

    def _parties(self, db: Session, entry: RosterEntry) -> tuple[Optional[Caregiver], Optional[Location]]:
        return db.get(Caregiver, entry.caregiver_id), db.get(Location, entry.location_id)

    def _notify(self, entry: RosterEntry, caregiver: Caregiver, location: Location, kind: ShiftNotice) -> None:
        try:
            self.notifier.send_shift_notification(
                caregiver.email,
                caregiver.full_name,
                {
                    "date": entry.shift_date.strftime("%a %d %b %Y"),
                    "start_time": entry.start_time.strftime("%H:%M"),
                    "end_time": entry.end_time.strftime("%H:%M"),
                    "location": location.name,
                    "room_bed": "Room/Bed Assignment" if entry.room_bed_id else None,
                },
                kind,
            )
        except Exception:
            logger.exception("Failed to send %s notice for roster %s", kind, entry.id)

    def _store_event_id(self, db: Session, entry: RosterEntry, event_id: Optional[str]) -> None:
        if event_id == entry.external_calendar_event_id:
            return
        entry.external_calendar_event_id = event_id
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to store calendar event id for roster %s", entry.id)

    def published(self, db: Session, entry: RosterEntry) -> None:
        """Entry just became PUBLISHED: create the calendar event, tell the caregiver."""
        caregiver, location = self._parties(db, entry)
        if not caregiver or not location:
            logger.warning("Roster %s has no caregiver or location; skipping sync", entry.id)
            return

        try:
            event_id = self.calendar.create_event(_event_body(entry, caregiver, location))
        except Exception:
            logger.exception("Failed to create calendar event for roster %s", entry.id)
        else:
            self._store_event_id(db, entry, event_id)

        self._notify(entry, caregiver, location, "SCHEDULED")

    def rescheduled(self, db: Session, entry: RosterEntry) -> None:
        """Published entry changed time, date or caregiver."""
        caregiver, location = self._parties(db, entry)
        if not caregiver or not location:
            logger.warning("Roster %s has no caregiver or location; skipping sync", entry.id)
            return

        body = _event_body(entry, caregiver, location)
        try:
            if entry.external_calendar_event_id:
                self.calendar.update_event(entry.external_calendar_event_id, body)
            else:
                self._store_event_id(db, entry, self.calendar.create_event(body))
        except Exception:
            logger.exception("Failed to update calendar event for roster %s", entry.id)

        self._notify(entry, caregiver, location, "UPDATED")

    def cancelled(self, db: Session, entry: RosterEntry, was_published: bool, deleting: bool = False) -> None:
        """Entry was cancelled, or is about to be deleted when `deleting` is set."""
        if entry.external_calendar_event_id:
            try:
                self.calendar.delete_event(entry.external_calendar_event_id)
            except Exception:
                logger.exception("Failed to delete calendar event for roster %s", entry.id)
            else:
                if not deleting:
                    self._store_event_id(db, entry, None)

        if not was_published:
            return

        caregiver, location = self._parties(db, entry)
        if caregiver and location:
            self._notify(entry, caregiver, location, "CANCELLED")
