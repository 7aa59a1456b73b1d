# app/api/dependencies/internal_auth.py
from typing import Optional

from fastapi import Header, HTTPException, Request, status


async def verify_internal_api_key(
    request: Request,
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Internal API key required for /internal endpoints in non-local environments.",
    ),
) -> None:
    """
    Dependency to protect /internal endpoints (reconciliation trigger and
    schedule engine control).

    Rules
    -----
    - APP_ENV in ("local", "test"):
        - If INTERNAL_API_KEY is not set -> no auth enforced.
        - If INTERNAL_API_KEY is set      -> header must match the configured key.
    - Any other APP_ENV:
        - INTERNAL_API_KEY must be set, otherwise 500 (misconfiguration).
        - Header must be present and match INTERNAL_API_KEY, otherwise 401.
    """
    settings = request.app.state.settings
    env = (settings.APP_ENV or "local").lower()
    expected = settings.INTERNAL_API_KEY

    if env not in ("local", "test") and not expected:
        # Fail fast instead of silently exposing the engine controls
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="INTERNAL_API_KEY not configured for this environment.",
        )

    if expected and internal_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key.",
        )
