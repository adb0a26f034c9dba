import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from dareon.config import settings
from dareon.models.user_models import User
from dareon.services import user_service
from dareon.services.file_service import ALLOWED_MIME_TYPES, LocalFileService
from dareon.utils.auth import get_current_user, require_basic_plan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])

file_service = LocalFileService()


def get_file_service() -> LocalFileService:
    return file_service


class SortRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sort_by: Literal["type", "date", "size", "name"] = Field(alias="sortBy")


@router.post("/upload")
async def upload_files(
    files: List[UploadFile] = File(...),
    user: User = Depends(require_basic_plan),
    service: LocalFileService = Depends(get_file_service),
):
    if not files:
        raise HTTPException(status_code=400, detail="Please upload files")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files (max {settings.MAX_UPLOAD_FILES} per upload)",
        )

    # Validate the whole batch before anything touches disk
    payloads = []
    for upload in files:
        if upload.content_type not in ALLOWED_MIME_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid file type: {upload.content_type}")
        # size is known once the part is spooled; check it before reading into memory
        if upload.size is not None and upload.size > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(status_code=400, detail=f"File too large: {upload.filename}")
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(status_code=400, detail=f"File too large: {upload.filename}")
        payloads.append((upload, data))

    # storage_used must cover every file already on disk, even if a later save fails
    uploaded = []
    total_bytes = 0
    for upload, data in payloads:
        uploaded.append(await service.save_upload(
            user.user_id, upload.filename or "", upload.content_type, data
        ))
        total_bytes += len(data)
        await user_service.increment_file_stats(user.user_id, len(data), 1)

    logger.info(f"📤 {len(uploaded)} file(s) uploaded by {user.user_id} ({total_bytes} bytes)")
    return {"success": True, "count": len(uploaded), "data": uploaded}


@router.get("")
async def list_files(
    user: User = Depends(get_current_user),
    service: LocalFileService = Depends(get_file_service),
):
    files = await service.list(user.user_id)
    return {"success": True, "count": len(files), "data": files}


@router.post("/sort")
async def sort_files(
    payload: SortRequest,
    user: User = Depends(get_current_user),
    service: LocalFileService = Depends(get_file_service),
):
    files = await service.sort(user.user_id, payload.sort_by)
    return {"success": True, "data": files}


@router.get("/search")
async def search_files(
    query: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    service: LocalFileService = Depends(get_file_service),
):
    files = await service.search(user.user_id, query)
    return {"success": True, "count": len(files), "data": files}


@router.get("/stats")
async def file_stats(
    user: User = Depends(get_current_user),
    service: LocalFileService = Depends(get_file_service),
):
    return {"success": True, "data": await service.stats(user.user_id)}
