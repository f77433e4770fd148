# dropfade/core/drop_logic.py

import os
import time
from typing import Callable

DEFAULT_EXPIRY_SECONDS = 60 * 60

EXPIRY_TOKENS = {
    "5min": 5 * 60,
    "5m": 5 * 60,
    "1hour": 60 * 60,
    "1h": 60 * 60,
    "1day": 24 * 60 * 60,
    "1d": 24 * 60 * 60,
}

DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "txt", "zip", "rar", "xlsx", "pptx"}

# Upload content types that mark a blob as a document when the name has no
# telling extension
DOCUMENT_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "application/zip",
    "application/x-rar-compressed",
    "application/vnd.rar",
}

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "txt": "text/plain",
    "doc": "application/msword",
    "docx": "application/msword",
}


def expiry_seconds(token: str | None) -> int:
    """Map an expiry token from the upload form to a TTL, default one hour"""
    return EXPIRY_TOKENS.get((token or "").strip().lower(), DEFAULT_EXPIRY_SECONDS)


def now_ms(clock: Callable[[], float] = time.time) -> int:
    return int(clock() * 1000)


def is_expired(expires_at: int, now: int) -> bool:
    return now > expires_at


def file_extension(filename: str | None) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lstrip(".").lower()


def is_document(filename: str | None, content_type: str | None = None) -> bool:
    if file_extension(filename) in DOCUMENT_EXTENSIONS:
        return True
    mime = (content_type or "").split(";")[0].strip().lower()
    return mime in DOCUMENT_CONTENT_TYPES


def content_type_for(filename: str | None) -> str:
    return CONTENT_TYPES.get(file_extension(filename), "application/octet-stream")
