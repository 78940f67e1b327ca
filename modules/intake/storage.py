# backend/modules/intake/storage.py

import logging
from typing import Any, Dict

import requests

from config import Config
from utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "/uploads"


def storage_status() -> Dict[str, Any]:
    """Which object-storage settings are present (never the values of the keys)."""
    return {
        "hasPublicKey": bool(Config.IMAGEKIT_PUBLIC_KEY),
        "hasPrivateKey": bool(Config.IMAGEKIT_PRIVATE_KEY),
        "hasEndpoint": bool(Config.IMAGEKIT_URL_ENDPOINT),
        "endpoint": Config.IMAGEKIT_URL_ENDPOINT,
        "publicKeyLength": len(Config.IMAGEKIT_PUBLIC_KEY or ""),
        "privateKeyLength": len(Config.IMAGEKIT_PRIVATE_KEY or ""),
    }


def upload_file(data: bytes, file_name: str, folder: str = None) -> Dict[str, str]:
    """
    Upload a file to ImageKit and return `{url, fileId, filePath}`.
    The private key authenticates as the basic-auth user name.
    """
    if not Config.IMAGEKIT_PRIVATE_KEY:
        raise UpstreamServiceError("Upload failed", details="ImageKit private key not configured")

    form = {
        "fileName": file_name,
        "folder": folder or DEFAULT_FOLDER,
        "useUniqueFileName": "true",
    }
    logger.debug("uploading %s (%d bytes) to %s", file_name, len(data), form["folder"])

    try:
        r = requests.post(
            Config.IMAGEKIT_UPLOAD_URL,
            auth=(Config.IMAGEKIT_PRIVATE_KEY, ""),
            data=form,
            files={"file": (file_name, data)},
            timeout=Config.HTTP_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.exception("ImageKit upload error")
        raise UpstreamServiceError("Upload failed", details=str(e)) from e

    if not r.ok:
        logger.error("ImageKit upload error: %s %s", r.status_code, r.text)
        raise UpstreamServiceError("Upload failed", details=f"{r.status_code} - {r.text}")

    result = r.json()
    return {
        "url": result.get("url"),
        "fileId": result.get("fileId"),
        "filePath": result.get("filePath"),
    }
