"""Firebase app and Firestore client lifecycle."""

import json
from pathlib import Path

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from google.cloud.firestore import Client

from config.settings import Settings

log = structlog.get_logger(__name__)

_app: firebase_admin.App | None = None
_client: Client | None = None


def _load_credentials(settings: Settings) -> credentials.Base:
    """Service-account JSON from env, then the JSON file, then ADC."""
    if settings.firebase_service_account:
        try:
            info = json.loads(settings.firebase_service_account)
            log.info("firebase_credentials_loaded", source="env")
            return credentials.Certificate(info)
        except (ValueError, TypeError) as e:
            log.warning("firebase_service_account_invalid", error=str(e))

    path = Path(settings.firebase_credentials)
    if path.is_file():
        log.info("firebase_credentials_loaded", source="file", path=str(path))
        return credentials.Certificate(str(path))

    log.info("firebase_credentials_loaded", source="application_default")
    return credentials.ApplicationDefault()


def init_firebase(settings: Settings) -> firebase_admin.App:
    """Initialise the default Firebase app once."""
    global _app
    if _app is None:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        _app = firebase_admin.initialize_app(_load_credentials(settings), options)
        log.info("firebase_app_initialized", project=_app.project_id)
    return _app


def get_firestore_client(settings: Settings) -> Client:
    """Get or create the Firestore client bound to the Firebase app."""
    global _client
    if _client is None:
        _client = firestore.client(init_firebase(settings))
        log.info("firestore_client_created")
    return _client


def close_firebase() -> None:
    """Close the Firestore client and delete the Firebase app."""
    global _app, _client
    if _client is not None:
        _client.close()
        _client = None
    if _app is not None:
        firebase_admin.delete_app(_app)
        _app = None
        log.info("firebase_app_closed")
