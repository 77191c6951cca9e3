"""
app/schemas/health.py

Liveness response schema.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    import_jobs: int = Field(default=0, ge=0)
    preview_sessions: int = Field(default=0, ge=0)
