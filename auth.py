import json
import logging
from typing import Optional

import firebase_admin
from fastapi import Header, HTTPException
from firebase_admin import auth as fb_auth, credentials as fb_credentials

import config

logger = logging.getLogger(__name__)


def init_firebase() -> None:
    """Initialize Firebase Admin once if credentials are provided."""
    if firebase_admin._apps or not config.FIREBASE_SERVICE_ACCOUNT_JSON:
        return
    try:
        cred = fb_credentials.Certificate(json.loads(config.FIREBASE_SERVICE_ACCOUNT_JSON))
        firebase_admin.initialize_app(cred)
    except (ValueError, OSError) as e:
        # endpoints that need auth will answer 401
        logger.error("Firebase initialization failed: %s", e)


def verify_user(authorization: Optional[str] = Header(None)) -> str:
    """Verify Firebase ID token from Authorization: Bearer <token>. Returns uid."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    token = parts[1]
    try:
        decoded = fb_auth.verify_id_token(token)
    except Exception as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")
    uid = decoded.get("uid")
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid token: no uid")
    return uid
