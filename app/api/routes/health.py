# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(..., description="Overall health status of the service.", examples=["ok"])
    app_name: str = Field(
        ...,
        description="Human-friendly name of the running application.",
        examples=["Class Session Calendar"],
    )
    environment: str = Field(
        ...,
        description="Current deployment environment (local/dev/stage/prod).",
        examples=["local"],
    )
    schedule_engine_active: bool = Field(
        ...,
        description="Whether the periodic session reconciliation timer is started.",
    )
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) at which this health check was generated.",
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description=(
        "Lightweight endpoint to verify that the backend is up and responding.\n\n"
        "Does not touch the database so it stays reliable while downstream "
        "components are degraded."
    ),
)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        schedule_engine_active=request.app.state.schedule_engine.scheduler_active,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
