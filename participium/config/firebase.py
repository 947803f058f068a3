"""
Firebase initialization.
Single-source-of-truth Firestore client and Storage bucket for Participium.
"""

import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore, initialize_app, storage

from participium.core.settings import settings

logger = logging.getLogger(__name__)

db: Optional[firestore.Client] = None


def _ensure_app() -> None:
    """Initialize the default Firebase app once."""
    if firebase_admin._apps:
        return

    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    if settings.FIREBASE_CREDENTIALS_PATH:
        cred_path = settings.FIREBASE_CREDENTIALS_PATH

        if not os.path.exists(cred_path):
            raise FileNotFoundError(
                f"Firebase credentials file not found: {cred_path}\n"
                f"Check FIREBASE_CREDENTIALS_PATH in your .env file."
            )

        try:
            with open(cred_path, "r") as f:
                cred_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Firebase credentials file is not valid JSON: {e}")

        required_fields = ["type", "project_id", "private_key", "client_email"]
        missing_fields = [field for field in required_fields if field not in cred_data]
        if missing_fields:
            raise ValueError(
                f"Firebase credentials file is missing required fields: {missing_fields}"
            )

        initialize_app(credentials.Certificate(cred_path), options or None)
        logger.info(f"[FIRESTORE] Firebase Admin SDK initialized for project {cred_data.get('project_id')}")
    else:
        logger.info("[FIRESTORE] No credentials path set, using Application Default Credentials")
        initialize_app(options=options or None)


def initialize_firestore() -> firestore.Client:
    global db

    if db is not None:
        return db

    try:
        _ensure_app()
        db = firestore.client()
        logger.info(f"[FIRESTORE] Project: {settings.FIREBASE_PROJECT_ID or 'default'}")
        return db
    except FileNotFoundError as e:
        raise RuntimeError(
            f"Firestore initialization FAILED - Credentials file not found.\n{str(e)}"
        )
    except ValueError as e:
        raise RuntimeError(
            f"Firestore initialization FAILED - Invalid credentials file.\n{str(e)}\n"
            f"Download a fresh service account key from Firebase Console."
        )
    except Exception as e:
        raise RuntimeError(
            f"Firestore initialization FAILED. Error: {str(e)}\n"
            f"Please check your Firebase credentials and configuration."
        )


def get_db() -> firestore.Client:
    """
    Get the initialized Firestore client.

    Raises RuntimeError if Firestore has not been initialized.
    """
    if db is None:
        try:
            initialize_firestore()
        except Exception as e:
            raise RuntimeError(
                f"Firestore not initialized and initialization failed: {e}. "
                "Please check your Firebase credentials and configuration."
            )
    return db


def get_bucket():
    """Get the default Cloud Storage bucket used for report photos."""
    _ensure_app()
    return storage.bucket(settings.FIREBASE_STORAGE_BUCKET)
