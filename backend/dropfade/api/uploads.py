# dropfade/api/uploads.py

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel

from dropfade.api.deps import get_drop_manager
from dropfade.core.drop_logic import expiry_seconds
from dropfade.core.errors import Oversize, ValidationError
from dropfade.core.rate_limit import UPLOAD_LIMIT, limiter
from dropfade.services.drop_lifecycle import DropLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload")


class TextUploadSchema(BaseModel):
    # Type checked in upload_text
    text: Any = None
    expiry: Optional[str] = None


@router.post("/file")
@limiter.limit(UPLOAD_LIMIT)
def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    expiry: Optional[str] = Form(None),
    drops: DropLifecycleManager = Depends(get_drop_manager),
):
    if file is None or not file.filename:
        raise ValidationError("No file provided")

    max_size = drops.settings.max_file_size
    # Read one byte past the cap so oversize uploads are never held in full
    data = file.file.read(max_size + 1)
    if len(data) > max_size:
        logger.info("Rejected upload %r: over %s bytes", file.filename, max_size)
        raise Oversize()

    code = drops.create_file(data, file.filename, expiry_seconds(expiry), file.content_type)
    return {
        "success": True,
        "code": code,
        "type": "file",
        "filename": file.filename,
    }


@router.post("/text")
@limiter.limit(UPLOAD_LIMIT)
def upload_text(
    request: Request,
    payload: TextUploadSchema,
    drops: DropLifecycleManager = Depends(get_drop_manager),
):
    if not isinstance(payload.text, str):
        raise ValidationError("No text provided")

    code = drops.create_text(payload.text, expiry_seconds(payload.expiry))
    return {"success": True, "code": code, "type": "text"}
