"""Liveness payload returned by GET /health/."""

from pydantic import BaseModel, Field

from shiftpay.core.database import DatabaseStatus


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
    environment: str = Field(description="APP_ENV of the running process")
    version: str = Field(description="Deployed API version")
    database: DatabaseStatus = Field(
        description="Whether the credential store answered SELECT 1",
    )
