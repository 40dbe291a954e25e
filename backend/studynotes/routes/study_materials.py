"""
StudyNotes Backend — Study Material Routes
============================================

What:  Vault uploads, listing, deletion and file serving.
       GET /uploads/{filename}   serves the stored binary inline (the fileUrl)
       GET /download/{filename}  serves it as an attachment named after the
                                 original upload
"""

import logging
import mimetypes
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from fastapi.responses import FileResponse

from studynotes.dependencies import get_files, get_material_service, get_pipeline
from studynotes.schemas.common import ErrorResponse, MessageResponse
from studynotes.schemas.study_material import StudyMaterialRecord
from studynotes.services.file_service import FileService
from studynotes.services.ingestion_service import IngestionPipeline
from studynotes.services.study_material_service import StudyMaterialService
from studynotes.store import RecordKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Study Materials"])

NOT_FOUND = {404: {"description": "Not found", "model": ErrorResponse}}

_TIMESTAMP_PREFIX = re.compile(r"^\d+-")


@router.post(
    "/upload-study-material",
    status_code=201,
    response_model=StudyMaterialRecord,
    responses={
        400: {"description": "Empty or oversized upload", "model": ErrorResponse},
        415: {"description": "Not a PDF or image", "model": ErrorResponse},
        500: {"description": "Text extraction or storage failed", "model": ErrorResponse},
        502: {"description": "Generation provider failed", "model": ErrorResponse},
    },
    summary="Upload a PDF or image to the study vault",
)
async def upload_study_material(
    file: UploadFile = File(..., description="PDF or image file"),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    files: FileService = Depends(get_files),
) -> StudyMaterialRecord:
    content = await file.read(files.max_file_size + 1)
    return await pipeline.ingest_file(
        content,
        file.content_type,
        file.filename or "upload",
        target=RecordKind.STUDY_MATERIAL,
    )


@router.get("/study-materials", response_model=List[StudyMaterialRecord])
async def list_study_materials(
    response: Response,
    q: Optional[str] = Query(default=None, max_length=200, description="Search filename, title and summary"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    materials: StudyMaterialService = Depends(get_material_service),
) -> List[StudyMaterialRecord]:
    records, total = await materials.list_materials(search=q, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return records


@router.get("/study-materials/{material_id}", response_model=StudyMaterialRecord, responses=NOT_FOUND)
async def get_study_material(
    material_id: str,
    materials: StudyMaterialService = Depends(get_material_service),
) -> StudyMaterialRecord:
    return await materials.get_material(material_id)


@router.delete("/study-materials/{material_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_study_material(
    material_id: str,
    materials: StudyMaterialService = Depends(get_material_service),
) -> MessageResponse:
    await materials.delete_material(material_id)
    return MessageResponse(message="Study material deleted successfully")


@router.get("/uploads/{filename:path}", responses=NOT_FOUND, summary="View a stored file")
async def view_file(
    filename: str,
    files: FileService = Depends(get_files),
) -> FileResponse:
    path = files.resolve_path(filename)
    media_type, _ = mimetypes.guess_type(path.name)
    return FileResponse(path, media_type=media_type or "application/octet-stream")


@router.get("/download/{filename:path}", responses=NOT_FOUND, summary="Download a stored file")
async def download_file(
    filename: str,
    files: FileService = Depends(get_files),
) -> FileResponse:
    path = files.resolve_path(filename)
    media_type, _ = mimetypes.guess_type(path.name)
    download_name = _TIMESTAMP_PREFIX.sub("", path.name) or path.name
    return FileResponse(
        path,
        media_type=media_type or "application/octet-stream",
        filename=download_name,
        content_disposition_type="attachment",
    )
