from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.api import deps
from rintrack.core.errors import BadRequest, ServerError
from rintrack.core.limiter import limiter, login_limit
from rintrack.core.logging import audit
from rintrack.core.settings import settings
from rintrack.schemas.auth import LoginRequest
from rintrack.schemas.common import SuccessResponse
from rintrack.services import users as users_service
from rintrack.services.sessions import (
    SessionIssuer,
    clear_session_cookie,
    cookie_policy,
    set_session_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=SuccessResponse, response_model_exclude_none=True)
@limiter.limit(login_limit)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    sessions: SessionIssuer = Depends(deps.get_session_issuer),
    db: AsyncSession = Depends(deps.get_db_session),
) -> SuccessResponse:
    """Exchange a fresh identity assertion for an httpOnly session cookie."""
    if not payload.id_token:
        raise BadRequest("Missing idToken")

    artifact = await sessions.login(payload.id_token)
    try:
        await users_service.record_login(
            db,
            artifact.subject.email,
            name=artifact.claims.get("name"),
            image=artifact.claims.get("picture"),
        )
    except SQLAlchemyError as exc:
        raise ServerError() from exc

    set_session_cookie(response, artifact.token, cookie_policy(settings))
    audit("auth.login", "Session issued for %s", artifact.subject.email)
    return SuccessResponse(success=True)


@router.post("/logout", response_model=SuccessResponse, response_model_exclude_none=True)
async def logout(response: Response) -> SuccessResponse:
    clear_session_cookie(response, cookie_policy(settings))
    return SuccessResponse(success=True)
