import logging
import smtplib
from email.message import EmailMessage
from typing import Literal, Optional

logger = logging.getLogger(__name__)

ShiftNotice = Literal["SCHEDULED", "UPDATED", "CANCELLED"]

SHIFT_SUBJECTS = {
    "SCHEDULED": "New Shift Scheduled - Care Home Roster",
    "UPDATED": "Shift Updated - Care Home Roster",
    "CANCELLED": "Shift Cancelled - Care Home Roster",
}


class Notifier:
    """
    Sends templated emails over SMTP.

    Without an SMTP host the message is only logged. Errors propagate; callers
    that treat notification as best-effort catch them.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "roster@carehome.local",
        admin_email: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.admin_email = admin_email

    def send(self, to: str, subject: str, body: str) -> None:
        if not self.host:
            logger.info("SMTP not configured; would send %r to %s", subject, to)
            return

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password or "")
            smtp.send_message(msg)
        logger.info("Sent %r to %s", subject, to)

    def send_shift_notification(self, email: str, name: str, shift: dict, kind: ShiftNotice) -> None:
        lines = [
            f"Dear {name},",
            "",
            f"Your shift has been {kind.lower()}:",
            "",
            f"Date: {shift['date']}",
            f"Time: {shift['start_time']} - {shift['end_time']}",
            f"Location: {shift['location']}",
        ]
        if shift.get("room_bed"):
            lines.append(f"Room/Bed: {shift['room_bed']}")
        lines += [
            "",
            "Please confirm your availability or contact the admin if you have any questions.",
            "",
            "Best regards,",
            "Care Home Management Team",
        ]
        self.send(email, SHIFT_SUBJECTS[kind], "\n".join(lines))

    def send_leave_submitted(self, caregiver_name: str, leave_date, leave_type: str, reason: str) -> None:
        if not self.admin_email:
            logger.info("Leave request submitted by %s for %s (no admin address configured)", caregiver_name, leave_date)
            return
        self.send(
            self.admin_email,
            f"Leave Request - {caregiver_name} - {leave_date}",
            f"{caregiver_name} requested {leave_type} leave on {leave_date}.\n\nReason: {reason}",
        )

    def send_leave_decision(self, email: str, name: str, leave_date, decision: str, note: Optional[str]) -> None:
        body = f"Dear {name},\n\nYour leave request for {leave_date} has been {decision.lower()}."
        if note:
            body += f"\n\nNote: {note}"
        self.send(email, f"Leave Request {decision.title()}", body)
