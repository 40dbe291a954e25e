"""
StudyNotes Backend — Study Material Service
=============================================

What:  Listing, fetching and deleting vault materials.
Why:   Deletion spans two resources. The record is the source of truth: it is
       removed first, then the binary is removed best-effort. A file that
       cannot be removed is logged and left for manual cleanup; the delete
       still succeeds.
"""

import logging
from typing import List, Optional, Tuple

from studynotes.schemas.study_material import StudyMaterialRecord
from studynotes.services.file_service import FileService, relative_path_from_url
from studynotes.store import DocumentStore, RecordKind

logger = logging.getLogger(__name__)


class StudyMaterialService:
    def __init__(self, store: DocumentStore, files: FileService):
        self.store = store
        self.files = files

    async def list_materials(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[StudyMaterialRecord], int]:
        """Materials newest upload first, with the total matching count."""
        materials = await self.store.find_all(
            RecordKind.STUDY_MATERIAL, "created_at", "desc", search=search, limit=limit, offset=offset
        )
        total = await self.store.count(RecordKind.STUDY_MATERIAL, search=search)
        return materials, total

    async def get_material(self, material_id: str) -> StudyMaterialRecord:
        return await self.store.find_by_id(RecordKind.STUDY_MATERIAL, material_id)

    async def delete_material(self, material_id: str) -> StudyMaterialRecord:
        """
        Delete the record, then its stored file.

        Raises:
            NotFoundError: Unknown id (no file is touched)
        """
        material = await self.store.delete_by_id(RecordKind.STUDY_MATERIAL, material_id)

        relative_path = relative_path_from_url(material.file_url)
        if relative_path is None:
            logger.warning("Study material %s had no file reference: %r", material_id, material.file_url)
        elif not await self.files.remove_file(relative_path):
            logger.warning(
                "Study material %s deleted but its file %s was not removed",
                material_id, relative_path,
            )
        return material
