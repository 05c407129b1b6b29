"""
Firebase Admin SDK initialization and token verification.
Firebase is the identity provider: a verified ID token yields the reviewer's uid and email.
"""
import json
import os
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, auth, exceptions as firebase_exceptions

from app.config import settings
from app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_firebase_app: Optional[firebase_admin.App] = None


def _load_credentials():
    """
    FIREBASE_CREDENTIALS_JSON may be a file path or an inline JSON document.
    Without it, application default credentials are used (local gcloud).
    """
    raw = settings.firebase_credentials_json
    if not raw:
        return credentials.ApplicationDefault()

    if os.path.exists(raw):
        logger.info(f"Loaded Firebase credentials from file: {raw}")
        return credentials.Certificate(raw)

    try:
        cred_dict = json.loads(raw)
    except json.JSONDecodeError:
        raise ConfigurationError(
            "FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string"
        )
    logger.info("Loaded Firebase credentials from JSON string")
    return credentials.Certificate(cred_dict)


def initialize_firebase() -> None:
    """
    Initialize Firebase Admin SDK once per process.

    Raises:
        ConfigurationError: If FIREBASE_PROJECT_ID is missing or credentials are unreadable
    """
    global _firebase_app

    if _firebase_app is not None:
        return

    if not settings.firebase_project_id:
        raise ConfigurationError("FIREBASE_PROJECT_ID must be set")

    _firebase_app = firebase_admin.initialize_app(
        _load_credentials(),
        {"projectId": settings.firebase_project_id}
    )


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its claims.

    Raises:
        ValueError: If the token is invalid, expired or revoked, or Firebase
            is not initialized in this process
    """
    if _firebase_app is None:
        raise ValueError("Firebase Admin SDK not initialized")

    try:
        return auth.verify_id_token(token)
    except ValueError:
        raise
    except firebase_exceptions.FirebaseError as e:
        raise ValueError(f"Token verification failed: {str(e)}")
