"""
Local file storage for client uploads (briefings, logos, spreadsheets).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from playcode.core.errors import NotFoundError, PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024

ALLOWED_TYPES = {
    "image": ("image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"),
    "document": (
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    "spreadsheet": (
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/csv",
    ),
    "design": (
        "image/vnd.adobe.photoshop",
        "application/postscript",
        "application/illustrator",
        "application/x-sketch",
        "application/x-figma",
    ),
    "text": ("text/plain", "text/markdown"),
}


def file_category(mime_type: str) -> Optional[str]:
    for category, types in ALLOWED_TYPES.items():
        if mime_type in types:
            return category
    return None


def is_safe_file_name(file_name: str) -> bool:
    return bool(file_name) and ".." not in file_name and "/" not in file_name and "\\" not in file_name


class FileStorage:
    """Stores uploads as ``<uuid4><ext>`` under a single directory."""

    def __init__(self, upload_dir: Path | str = "uploads", *, max_file_size: int = MAX_FILE_SIZE, url_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.max_file_size = max_file_size
        self.url_prefix = url_prefix.rstrip("/")

    def _ensure_dir(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save(self, original_name: str, content: bytes, content_type: str) -> Dict[str, Any]:
        if not content:
            raise ValidationError("Nenhum arquivo enviado", code="NO_FILE")
        if len(content) > self.max_file_size:
            raise PayloadTooLargeError(
                f"Arquivo muito grande. Tamanho máximo: {self.max_file_size // (1024 * 1024)}MB",
                code="FILE_TOO_LARGE",
                context={"size": len(content), "maxSize": self.max_file_size},
            )

        mime_type = (content_type or "").split(";")[0].strip().lower()
        category = file_category(mime_type)
        if category is None:
            raise ValidationError("Tipo de arquivo não permitido", code="FILE_TYPE_NOT_ALLOWED", context={"type": mime_type})

        file_id = str(uuid.uuid4())
        file_name = f"{file_id}{Path(original_name or '').suffix.lower()}"
        self._ensure_dir()
        tmp_path = self.upload_dir / f"{file_name}.tmp"
        target = self.upload_dir / file_name
        try:
            tmp_path.write_bytes(content)
            tmp_path.replace(target)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        logger.info(f"Stored upload {original_name!r} as {file_name} ({len(content)} bytes, {category})")
        return {
            "id": file_id,
            "originalName": original_name,
            "fileName": file_name,
            "size": len(content),
            "type": mime_type,
            "category": category,
            "url": f"{self.url_prefix}/{file_name}",
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }

    def delete(self, file_name: Optional[str]) -> None:
        if not file_name:
            raise ValidationError("Nenhum arquivo especificado", code="NO_FILE")
        if not is_safe_file_name(file_name):
            raise ValidationError("Nome de arquivo inválido", code="INVALID_FILENAME")

        path = self.upload_dir / file_name
        if not path.is_file():
            raise NotFoundError("Arquivo não encontrado", code="FILE_NOT_FOUND", context={"fileName": file_name})
        path.unlink()
        logger.info(f"Deleted upload {file_name}")
