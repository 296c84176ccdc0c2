from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse

from .api_models import EventOut, GuardianStatus, ServiceStatus
from .control import Guardian
from .events import HEALTH, INCIDENT
from .report import build_report


def create_app(guardian: Guardian) -> FastAPI:
    """Read-only status endpoints over a running guardian."""
    app = FastAPI(title="Service Guardian")

    @app.get("/health", response_model=GuardianStatus)
    def health() -> GuardianStatus:
        return GuardianStatus(
            status=guardian.status,
            ticks=guardian.ticks,
            uptime_s=round(guardian.state.elapsed_s(), 3),
            check_interval_s=guardian.s.check_interval_s,
        )

    @app.get("/services", response_model=list[ServiceStatus])
    def services() -> list[ServiceStatus]:
        return [
            ServiceStatus(
                name=st.name,
                uptime_s=st.uptime_s,
                downtime_s=st.downtime_s,
                ticks_observed=st.ticks_observed,
                availability=st.availability,
                last_healthy=st.last_healthy,
                last_checked=st.last_checked,
                restarts_attempted=st.restarts_attempted,
                restarts_failed=st.restarts_failed,
            )
            for st in guardian.state.snapshot()
        ]

    @app.get("/services/{name}", response_model=ServiceStatus)
    def service(name: str) -> ServiceStatus:
        for item in services():
            if item.name == name:
                return item
        raise HTTPException(status_code=404, detail=f"Unknown service '{name}'")

    @app.get("/report", response_class=PlainTextResponse)
    def report() -> str:
        return build_report(guardian.state)

    @app.get("/events", response_model=list[EventOut])
    def events(kind: str | None = Query(None), limit: int = Query(20, ge=1, le=500)) -> list[EventOut]:
        if kind is not None and kind not in {HEALTH, INCIDENT}:
            raise HTTPException(status_code=400, detail="kind must be 'health' or 'incident'")
        return [EventOut(ts=e.ts, kind=e.kind, message=e.message) for e in guardian.events.recent(kind, limit)]

    return app
