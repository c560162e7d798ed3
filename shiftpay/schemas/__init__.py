"""Pydantic request/response schemas."""

from shiftpay.schemas.auth import (
    ActiveSessionsResponse,
    AuthenticatedUser,
    RefreshSession,
    SessionInfo,
    TokenPairResponse,
)
from shiftpay.schemas.health import HealthResponse

__all__ = [
    "ActiveSessionsResponse",
    "AuthenticatedUser",
    "HealthResponse",
    "RefreshSession",
    "SessionInfo",
    "TokenPairResponse",
]
