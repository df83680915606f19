"""Firebase Admin SDK initialization."""

import logging
import os
import firebase_admin
from firebase_admin import credentials
from ...core.config import settings

logger = logging.getLogger(__name__)


def initialize_firebase() -> bool:
    """
    Initialize Firebase Admin SDK for the Firestore camera directory.

    Idempotent: does nothing if already initialized.

    Returns:
        True if an app is initialized after the call
    """
    if firebase_admin._apps:
        return True

    cred_path = settings.firebase_credentials_path
    if not os.path.exists(cred_path):
        logger.error(f"Firebase credentials file not found at: {cred_path}")
        # Let the app start; camera lookups report the directory as unavailable
        return False

    try:
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred)
        logger.info(f"Firebase Admin SDK initialized ({os.path.basename(cred_path)})")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize Firebase: {e}")
        raise
