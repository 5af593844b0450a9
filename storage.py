import json
import logging
from typing import Optional

from fastapi import HTTPException, UploadFile
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

import config

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]


def get_drive_service():
    """Build the Drive service from service account credentials."""
    if not config.SERVICE_ACCOUNT_JSON:
        raise HTTPException(status_code=500, detail="GOOGLE_SERVICE_ACCOUNT_JSON not set")
    try:
        # Allow passing either full JSON string or a file path
        if config.SERVICE_ACCOUNT_JSON.strip().startswith("{"):
            info = json.loads(config.SERVICE_ACCOUNT_JSON)
            creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        else:
            creds = Credentials.from_service_account_file(config.SERVICE_ACCOUNT_JSON, scopes=SCOPES)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Invalid Google service account credentials: {e}")

    try:
        return build("drive", "v3", credentials=creds)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to initialize Google Drive: {e}")


def upload_file_to_drive(file: UploadFile) -> Optional[str]:
    """Upload file to Google Drive, return sharable link."""
    if not config.DRIVE_FOLDER_ID:
        raise HTTPException(status_code=500, detail="DRIVE_FOLDER_ID not set")
    drive_service = get_drive_service()

    file_metadata = {
        "name": file.filename,
        "parents": [config.DRIVE_FOLDER_ID]
    }
    media = MediaIoBaseUpload(file.file, mimetype=file.content_type or "application/octet-stream", resumable=False)
    try:
        uploaded = drive_service.files().create(
            body=file_metadata, media_body=media, fields="id, webViewLink, webContentLink"
        ).execute()
    except HttpError as e:
        logger.error("Drive upload failed for %s: %s", file.filename, e)
        raise HTTPException(status_code=502, detail=f"Upload failed: {e}")

    # Readable by anyone with the link
    try:
        drive_service.permissions().create(fileId=uploaded["id"], body={"type": "anyone", "role": "reader"}).execute()
    except HttpError as e:
        logger.warning("Could not share uploaded file %s: %s", uploaded.get("id"), e)
    return uploaded.get("webViewLink") or uploaded.get("webContentLink")
