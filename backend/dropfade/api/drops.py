# dropfade/api/drops.py

from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import Response

from dropfade.api.deps import get_drop_manager
from dropfade.core.codes import normalize_code
from dropfade.core.drop_logic import content_type_for
from dropfade.core.errors import ValidationError
from dropfade.core.rate_limit import ACCESS_LIMIT, limiter
from dropfade.models.drop import DropKind
from dropfade.services.drop_lifecycle import DropLifecycleManager

router = APIRouter()


@router.get("/file/{code}")
@limiter.limit(ACCESS_LIMIT)
def peek_drop(request: Request, code: str, drops: DropLifecycleManager = Depends(get_drop_manager)):
    """Preview a drop without spending its access"""
    record = drops.peek(code)
    return {"success": True, "data": record.to_wire()}


@router.post("/file/{code}")
@limiter.limit(ACCESS_LIMIT)
def drop_action(
    request: Request,
    code: str,
    payload: dict = Body(None),
    drops: DropLifecycleManager = Depends(get_drop_manager),
):
    """Spend the access without downloading, e.g. after a clipboard copy"""
    if (payload or {}).get("action") != "download":
        raise ValidationError("Invalid action")

    drops.redeem(code)
    return {"success": True}


@router.get("/download/{code}")
@limiter.limit(ACCESS_LIMIT)
def download_drop(request: Request, code: str, drops: DropLifecycleManager = Depends(get_drop_manager)):
    drop = drops.consume(code)

    if drop.kind is DropKind.TEXT:
        return {
            "success": True,
            "type": "text",
            "content": drop.payload,
            "filename": f"note-{normalize_code(code)}.txt",
            "message": "Text has been permanently deleted after this access",
        }

    filename = drop.display_name or "download"
    return Response(
        content=drop.payload,
        media_type=content_type_for(filename),
        headers={
            "Content-Disposition": f'attachment; filename="{quote(filename)}"',
            "Content-Length": str(len(drop.payload)),
        },
    )
