import logging
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carehome.core.config import Settings, get_settings
from carehome.core.database import init_db, make_engine, make_session_factory
from carehome.routers.audit import router as audit_router
from carehome.routers.care_receivers import router as care_receivers_router
from carehome.routers.caregivers import router as caregivers_router
from carehome.routers.leaves import router as leaves_router
from carehome.routers.locations import router as locations_router
from carehome.routers.room_beds import router as room_beds_router
from carehome.routers.rosters import router as rosters_router
from carehome.services.attachments import AttachmentStore
from carehome.services.audit import AuditService
from carehome.services.calendar import CalendarClient
from carehome.services.leaves import LeaveService
from carehome.services.notifications import Notifier
from carehome.services.occupancy import OccupancyLedger
from carehome.services.rosters import RosterService
from carehome.services.shift_sync import ShiftSync


def create_app(
    settings: Optional[Settings] = None,
    calendar: Optional[CalendarClient] = None,
    notifier: Optional[Notifier] = None,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    tz = ZoneInfo(settings.timezone)
    now_fn = now_fn or (lambda: datetime.now(tz))

    engine = make_engine(settings.database_url)
    if settings.database_url.startswith("sqlite"):
        init_db(engine)

    calendar = calendar or CalendarClient(
        settings.calendar_api_url,
        token=settings.calendar_api_token,
        calendar_id=settings.calendar_id,
    )
    notifier = notifier or Notifier(
        settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_from,
        admin_email=settings.admin_notification_email,
    )

    app = FastAPI(title="Care Home API")

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.now_fn = now_fn

    audit = AuditService()
    app.state.audit = audit
    app.state.ledger = OccupancyLedger(audit)
    app.state.rosters = RosterService(audit, ShiftSync(calendar, notifier), now_fn)
    app.state.leaves = LeaveService(
        audit,
        notifier,
        AttachmentStore(settings.upload_dir, now_fn),
        now_fn,
        tz,
        max_attachments=settings.max_leave_attachments,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(locations_router, prefix="/locations", tags=["locations"])
    app.include_router(caregivers_router, prefix="/caregivers", tags=["caregivers"])
    app.include_router(room_beds_router, prefix="/room-beds", tags=["room-beds"])
    app.include_router(care_receivers_router, prefix="/care-receivers", tags=["care-receivers"])
    app.include_router(rosters_router, prefix="/rosters", tags=["rosters"])
    app.include_router(leaves_router, prefix="/leaves", tags=["leaves"])
    app.include_router(audit_router, prefix="/audit-logs", tags=["audit"])

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
