"""Core configuration, database access and credential primitives."""

from shiftpay.core.config import get_settings, settings
from shiftpay.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
