# routers/imports.py — Collaborator import from payroll exports
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, has_min_role, CurrentUser
from database import get_db_session
from errors import BadRequestError, ForbiddenError
from models import UserRole
from responses import success_response
from services.collaborator_import import parse_format, parse_import_file, upsert_collaborators

router = APIRouter(prefix="/api/v1/imports", tags=["Imports"])

MAX_IMPORT_BYTES = 5 * 1024 * 1024


@router.post("/collaborators")
async def import_collaborators(
    type: str = Query(..., description="senior or totvs"),
    commit: bool = Query(default=False),
    file: UploadFile = File(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Preview a Senior/TOTVS export; with commit=true, upsert the rows"""
    fmt = parse_format(type)
    content = await file.read(MAX_IMPORT_BYTES + 1)
    if not content:
        raise BadRequestError("Import file is empty")
    if len(content) > MAX_IMPORT_BYTES:
        raise BadRequestError("Import file exceeds 5 MB")

    rows = parse_import_file(content, fmt)
    payload = {"format": fmt.value, "count": len(rows), "rows": [r.to_dict() for r in rows]}

    if not commit:
        return success_response(payload, "Preview only; pass commit=true to import")

    if not has_min_role(user, UserRole.MANAGER):
        raise ForbiddenError("Only managers can import collaborators")
    payload.update(await upsert_collaborators(db, user.company_id, rows))
    return success_response(payload, "Collaborators imported")
