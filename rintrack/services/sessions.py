from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Literal

from fastapi import Response

from rintrack.core.errors import InvalidAssertion, ServerError
from rintrack.core.security import (
    CredentialRejected,
    IdentityIssuer,
    IssuerUnavailable,
    VerifiedSubject,
    subject_from_claims,
)
from rintrack.core.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CookiePolicy:
    name: str
    max_age: int
    secure: bool
    samesite: Literal["lax", "strict", "none"]
    httponly: bool = True
    path: str = "/"


def cookie_policy(settings: Settings) -> CookiePolicy:
    max_age = int(timedelta(days=settings.session_expires_days).total_seconds())
    if settings.is_production:
        # Cross-site capable: the frontend is served from a different origin.
        return CookiePolicy(settings.session_cookie_name, max_age, secure=True, samesite="none")
    return CookiePolicy(settings.session_cookie_name, max_age, secure=False, samesite="lax")


@dataclass(frozen=True)
class SessionArtifact:
    token: str
    subject: VerifiedSubject
    claims: dict[str, Any]


class SessionIssuer:
    """Exchanges a fresh identity assertion for a long-lived session cookie."""

    def __init__(
        self,
        issuer: IdentityIssuer,
        *,
        expires_in: timedelta,
        max_assertion_age: timedelta,
    ) -> None:
        self._issuer = issuer
        self._expires_in = expires_in
        self._max_assertion_age = max_assertion_age

    @classmethod
    def from_settings(cls, issuer: IdentityIssuer, settings: Settings) -> "SessionIssuer":
        return cls(
            issuer,
            expires_in=timedelta(days=settings.session_expires_days),
            max_assertion_age=timedelta(seconds=settings.id_token_max_age_seconds),
        )

    def _is_fresh(self, claims: dict[str, Any]) -> bool:
        auth_time = claims.get("auth_time")
        if not isinstance(auth_time, (int, float)):
            return False
        return time.time() - auth_time <= self._max_assertion_age.total_seconds()

    async def login(self, id_token: str) -> SessionArtifact:
        try:
            claims = await self._issuer.verify_id_token(id_token, check_revoked=True)
            if not self._is_fresh(claims):
                logger.info("Rejected login with stale identity assertion")
                raise InvalidAssertion()
            subject = subject_from_claims(claims, source="session")
            token = await self._issuer.create_session_cookie(id_token, self._expires_in)
        except CredentialRejected as exc:
            logger.info("Rejected identity assertion: %s", exc)
            raise InvalidAssertion() from exc
        except IssuerUnavailable as exc:
            logger.warning("Identity issuer unavailable during login: %s", exc)
            raise ServerError() from exc
        return SessionArtifact(token=token, subject=subject, claims=claims)


def set_session_cookie(response: Response, token: str, policy: CookiePolicy) -> None:
    response.set_cookie(
        key=policy.name,
        value=token,
        max_age=policy.max_age,
        path=policy.path,
        secure=policy.secure,
        httponly=policy.httponly,
        samesite=policy.samesite,
    )


def clear_session_cookie(response: Response, policy: CookiePolicy) -> None:
    response.delete_cookie(
        key=policy.name,
        path=policy.path,
        secure=policy.secure,
        httponly=policy.httponly,
        samesite=policy.samesite,
    )
