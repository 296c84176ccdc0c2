from __future__ import annotations

from pydantic import BaseModel, Field


class GuardianStatus(BaseModel):
    status: str = Field(..., description="running|shutting_down|stopped")
    ticks: int = Field(..., ge=0, description="Completed ticks")
    uptime_s: float = Field(..., ge=0, description="Seconds since the guardian started")
    check_interval_s: int


class ServiceStatus(BaseModel):
    name: str
    uptime_s: float = Field(..., ge=0)
    downtime_s: float = Field(..., ge=0)
    ticks_observed: int = Field(..., ge=0)
    availability: float | None = Field(None, ge=0, le=100, description="Percent; null until observed")
    last_healthy: bool | None = None
    last_checked: str | None = None
    restarts_attempted: int = 0
    restarts_failed: int = 0


class EventOut(BaseModel):
    ts: str
    kind: str = Field(..., description="health|incident")
    message: str
