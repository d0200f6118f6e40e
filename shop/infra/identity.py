"""
Identity provider adapter (Firebase Authentication ID tokens).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError
from django.conf import settings
from django.utils.module_loading import import_string

from shop.domain.exceptions import ExternalServiceFailure, Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    name: str = ""
    email: str = ""
    phone: str = ""


def _normalize_private_key(raw: str) -> str:
    # Keys pasted into .env files arrive quoted and with literal "\n"
    return raw.strip().strip("\"'").replace("\\n", "\n")


class FirebaseIdentityVerifier:
    """Exchanges a client ID token for a verified identity."""

    APP_NAME = "giftshop"

    def __init__(self, app=None):
        self._app = app

    @property
    def app(self):
        if self._app is None:
            self._app = self._initialize_app()
        return self._app

    def _initialize_app(self):
        try:
            return firebase_admin.get_app(self.APP_NAME)
        except ValueError:
            pass

        project_id = settings.FIREBASE_PROJECT_ID
        client_email = settings.FIREBASE_CLIENT_EMAIL
        private_key = _normalize_private_key(settings.FIREBASE_PRIVATE_KEY)
        if not (project_id and client_email and private_key):
            logger.error("firebase_not_configured")
            raise ExternalServiceFailure("Identity provider is not configured")

        certificate = credentials.Certificate({
            "type": "service_account",
            "project_id": project_id,
            "client_email": client_email,
            "private_key": private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        return firebase_admin.initialize_app(certificate, name=self.APP_NAME)

    def verify(self, token: str) -> VerifiedIdentity:
        if not token:
            raise Unauthorized("Authentication token is required")
        try:
            claims = auth.verify_id_token(token, app=self.app)
        except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
            raise Unauthorized("Invalid or expired authentication token") from e
        except FirebaseError as e:
            logger.error("identity_verification_failed", extra={"error": str(e)})
            raise ExternalServiceFailure("Identity verification failed") from e

        return VerifiedIdentity(
            uid=claims["uid"],
            name=claims.get("name") or "",
            email=claims.get("email") or "",
            phone=claims.get("phone_number") or "",
        )


def get_identity_verifier():
    """Instantiate the verifier configured in ``SHOP_IDENTITY_VERIFIER``."""
    return import_string(settings.SHOP_IDENTITY_VERIFIER)()
