import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rintrack.core import context
from rintrack.core.errors import Forbidden, ServerError
from rintrack.core.firebase import get_firebase_app
from rintrack.core.roles import (
    ADMIN_ONLY,
    BORROWER_ONLY,
    MANAGER_ONLY,
    STAFF,
    Role,
    describe_roles,
    role_set,
)
from rintrack.core.security import (
    Credential,
    CredentialVerifier,
    FirebaseIdentityIssuer,
    IdentityIssuer,
    VerifiedSubject,
    extract_credential,
)
from rintrack.core.settings import settings
from rintrack.db.session import get_db
from rintrack.models import User
from rintrack.services import users as users_service
from rintrack.services.authz import AccessDecision, authorize
from rintrack.services.checkout import CheckoutOrchestrator
from rintrack.services.payment_processor import PaymentProcessor, StripePaymentProcessor
from rintrack.services.reconciliation import ReconciliationService
from rintrack.services.sessions import SessionIssuer

logger = logging.getLogger(__name__)

SUBJECT_STATE_KEY = "verified_subject"


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


@lru_cache(maxsize=1)
def get_identity_issuer() -> IdentityIssuer:
    return FirebaseIdentityIssuer(get_firebase_app())


@lru_cache(maxsize=1)
def get_payment_processor() -> PaymentProcessor:
    return StripePaymentProcessor(settings.stripe_secret_key)


def get_credential_verifier(
    issuer: IdentityIssuer = Depends(get_identity_issuer),
) -> CredentialVerifier:
    return CredentialVerifier(issuer)


def get_session_issuer(issuer: IdentityIssuer = Depends(get_identity_issuer)) -> SessionIssuer:
    return SessionIssuer.from_settings(issuer, settings)


def get_checkout_orchestrator(
    processor: PaymentProcessor = Depends(get_payment_processor),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        processor, site_domain=settings.site_domain, currency=settings.stripe_currency
    )


def get_reconciliation_service(
    processor: PaymentProcessor = Depends(get_payment_processor),
) -> ReconciliationService:
    return ReconciliationService(processor)


def read_credential(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Optional[Credential]:
    return extract_credential(request.cookies.get(settings.session_cookie_name), authorization)


async def get_verified_subject(
    request: Request,
    credential: Optional[Credential] = Depends(read_credential),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> VerifiedSubject:
    """Single trust boundary: everything downstream relies on this subject."""
    subject = await verifier.verify(credential)
    setattr(request.state, SUBJECT_STATE_KEY, subject)
    context.set_subject(subject.email)
    return subject


class RoleGuard:
    """Dependency that admits only stored identities holding one of the permitted roles.

    The role is re-read from the store on every request so demotions and
    suspensions apply immediately.
    """

    def __init__(self, *roles: Role) -> None:
        self.permitted = role_set(roles)

    @classmethod
    def of(cls, permitted: frozenset[Role]) -> "RoleGuard":
        return cls(*permitted)

    def __repr__(self) -> str:
        return f"RoleGuard({describe_roles(self.permitted)})"

    async def __call__(
        self,
        subject: VerifiedSubject = Depends(get_verified_subject),
        db: AsyncSession = Depends(get_db_session),
    ) -> User:
        try:
            identity = await users_service.get_by_email(db, subject.email)
        except SQLAlchemyError as exc:
            logger.error("Role lookup failed for %s", self)
            raise ServerError() from exc

        decision = authorize(self.permitted, identity)
        if decision.allowed:
            return identity

        logger.info("Denied %s: %s", self, decision.value)
        role = identity.role if identity is not None else None
        details = {"role": role, "allowed_roles": sorted(r.value for r in self.permitted)}
        message = (
            "Account suspended"
            if decision is AccessDecision.DENY_SUSPENDED
            else f"{describe_roles(self.permitted)} only actions!"
        )
        raise Forbidden(message, details=details, fields={"role": role})


require_admin = RoleGuard.of(ADMIN_ONLY)
require_manager = RoleGuard.of(MANAGER_ONLY)
require_borrower = RoleGuard.of(BORROWER_ONLY)
require_staff = RoleGuard.of(STAFF)
