"""
iCanGrow API — Health Check Route
===================================

What:  GET /health for load balancers and container health checks. No auth.
How:   Runs SELECT 1 through the gateway. The process answers "OK" as long as
       it is serving; the database field says whether the store is reachable,
       so an orchestrator can tell a cold database from a dead process.
"""

import logging

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from icangrow import __version__
from icangrow.config import settings
from icangrow.exceptions import GatewayNotInitializedError
from icangrow.models.mixins import utcnow
from icangrow.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    database = "connected"
    gateway = getattr(request.app.state, "gateway", None)
    try:
        if gateway is None:
            raise GatewayNotInitializedError()
        await gateway.ping()
    except (SQLAlchemyError, OSError, GatewayNotInitializedError) as e:
        database = "disconnected"
        logger.warning("Health check: database unreachable: %s", type(e).__name__)

    return HealthResponse(
        status="OK",
        timestamp=utcnow(),
        environment=settings.environment,
        version=__version__,
        database=database,
    )
