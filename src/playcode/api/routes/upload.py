"""
Upload API Route

Client asset uploads for onboarding (logos, briefings, spreadsheets).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from playcode.infrastructure.storage.file_storage import FileStorage

from ..dependencies import provide

router = APIRouter()


@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    storage: FileStorage = Depends(provide(FileStorage)),
):
    content = await file.read()
    stored = storage.save(file.filename or "", content, file.content_type or "")
    return {"success": True, "data": stored}


@router.delete("/upload")
async def delete_file(
    fileName: Optional[str] = Query(None),
    storage: FileStorage = Depends(provide(FileStorage)),
):
    storage.delete(fileName)
    return {"success": True, "message": "Arquivo removido com sucesso"}
