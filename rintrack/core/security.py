from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Protocol, Union

import firebase_admin
from firebase_admin import auth, exceptions as firebase_exceptions
from starlette.concurrency import run_in_threadpool

from rintrack.core.errors import ServerError, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionCookie:
    token: str


@dataclass(frozen=True, slots=True)
class BearerToken:
    token: str


@dataclass(frozen=True, slots=True)
class MalformedCredential:
    """An Authorization header that is present but not ``Bearer <token>``."""

    reason: str


Credential = Union[SessionCookie, BearerToken, MalformedCredential]


@dataclass(frozen=True, slots=True)
class VerifiedSubject:
    email: str
    uid: Optional[str] = None
    source: str = "bearer"


def extract_credential(
    cookie_value: Optional[str], authorization: Optional[str]
) -> Optional[Credential]:
    """Pick the single credential trusted for this request.

    A session cookie always wins so a stale header cannot override a browser
    session.
    """
    if cookie_value:
        return SessionCookie(cookie_value)
    if authorization is None:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return MalformedCredential("unsupported authorization scheme")
    token = token.strip()
    if not token or " " in token:
        return MalformedCredential("bearer token missing or malformed")
    return BearerToken(token)


class CredentialRejected(Exception):
    """The issuer refused the credential (bad signature, expired, revoked...)."""


class IssuerUnavailable(Exception):
    """The issuer could not be reached or did not answer in time."""


class IdentityIssuer(Protocol):
    async def verify_id_token(self, token: str, *, check_revoked: bool = True) -> dict[str, Any]:
        ...

    async def verify_session_cookie(
        self, token: str, *, check_revoked: bool = True
    ) -> dict[str, Any]:
        ...

    async def create_session_cookie(self, id_token: str, expires_in: timedelta) -> str:
        ...


_TRANSIENT_ERRORS = (
    auth.CertificateFetchError,
    firebase_exceptions.UnavailableError,
    firebase_exceptions.DeadlineExceededError,
    firebase_exceptions.InternalError,
    firebase_exceptions.UnknownError,
)


class FirebaseIdentityIssuer:
    """Adapter over ``firebase_admin.auth`` that normalises its error surface."""

    def __init__(self, app: firebase_admin.App) -> None:
        self._app = app

    async def _call(self, func, *args, **kwargs):
        try:
            return await run_in_threadpool(func, *args, app=self._app, **kwargs)
        except _TRANSIENT_ERRORS as exc:
            raise IssuerUnavailable(str(exc)) from exc
        except (firebase_exceptions.FirebaseError, ValueError) as exc:
            raise CredentialRejected(type(exc).__name__) from exc

    async def verify_id_token(self, token: str, *, check_revoked: bool = True) -> dict[str, Any]:
        return await self._call(auth.verify_id_token, token, check_revoked=check_revoked)

    async def verify_session_cookie(
        self, token: str, *, check_revoked: bool = True
    ) -> dict[str, Any]:
        return await self._call(auth.verify_session_cookie, token, check_revoked=check_revoked)

    async def create_session_cookie(self, id_token: str, expires_in: timedelta) -> str:
        return await self._call(auth.create_session_cookie, id_token, expires_in=expires_in)


def subject_from_claims(claims: dict[str, Any], source: str) -> VerifiedSubject:
    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise CredentialRejected("verified claims carry no email")
    return VerifiedSubject(email=email, uid=claims.get("uid") or claims.get("sub"), source=source)


class CredentialVerifier:
    def __init__(self, issuer: IdentityIssuer) -> None:
        self._issuer = issuer

    async def verify(self, credential: Optional[Credential]) -> VerifiedSubject:
        if credential is None:
            logger.info("Rejected request without credential")
            raise Unauthenticated()
        if isinstance(credential, MalformedCredential):
            logger.info("Rejected malformed credential: %s", credential.reason)
            raise Unauthenticated()
        try:
            if isinstance(credential, SessionCookie):
                claims = await self._issuer.verify_session_cookie(
                    credential.token, check_revoked=True
                )
                return subject_from_claims(claims, source="session")
            claims = await self._issuer.verify_id_token(credential.token, check_revoked=True)
            return subject_from_claims(claims, source="bearer")
        except CredentialRejected as exc:
            logger.info("Rejected %s credential: %s", type(credential).__name__, exc)
            raise Unauthenticated() from exc
        except IssuerUnavailable as exc:
            logger.warning("Identity issuer unavailable: %s", exc)
            raise ServerError() from exc
