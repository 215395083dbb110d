"""Pydantic schemas for the health module."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from docportal.common.schema import BaseSchema

ComponentState = Literal["available", "degraded", "unavailable"]


class HealthComponentStatus(BaseSchema):
    name: str
    status: ComponentState
    detail: str | None = None


class HealthCheckResponse(BaseSchema):
    status: Literal["ok", "degraded"]
    timestamp: datetime
    components: list[HealthComponentStatus]


__all__ = ["ComponentState", "HealthCheckResponse", "HealthComponentStatus"]
