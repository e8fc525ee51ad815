from __future__ import annotations

import base64
import json
import logging
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials

from rintrack.core.settings import settings

logger = logging.getLogger(__name__)

APP_NAME = "rintrack"


class FirebaseConfigError(RuntimeError):
    pass


def _decode_service_key(encoded: str) -> dict:
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
        return json.loads(decoded)
    except (ValueError, UnicodeDecodeError) as exc:
        raise FirebaseConfigError("FIREBASE_SERVICE_KEY is not base64-encoded JSON") from exc


@lru_cache(maxsize=1)
def get_firebase_app() -> firebase_admin.App:
    """Initialise the Firebase app once per process.

    Uses the base64 service account in ``FIREBASE_SERVICE_KEY`` when set and
    falls back to application default credentials otherwise.
    """
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    if settings.firebase_service_key:
        credential = credentials.Certificate(_decode_service_key(settings.firebase_service_key))
    else:
        credential = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(credential, options=options, name=APP_NAME)
    logger.info("Firebase app initialised (project=%s)", app.project_id or "-")
    return app


def is_configured() -> bool:
    return bool(settings.firebase_service_key or settings.firebase_project_id)
