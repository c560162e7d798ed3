"""Liveness endpoint for load balancers; reports credential store reachability."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from shiftpay.core.config import settings
from shiftpay.core.database import database_status, get_db
from shiftpay.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> HealthResponse:
    # Always 200 so a database outage does not take the process out of rotation.
    return HealthResponse(
        environment=settings.APP_ENV,
        version=request.app.version,
        database=database_status(db),
    )
