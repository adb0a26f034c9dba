"""
📁 Local File Service

Per-user file storage rooted at STORAGE_ROOT/<user_id>/.

- Listing walks the user directory recursively (missing dir -> no files)
- Each upload is stored as <uuid><ext> with a JSON sidecar
  (<stored name>.meta.json) holding the original name, MIME type, upload date
  and PDF details; sidecars are never listed as files
- Sorting / search / statistics operate on the listing

Blocking filesystem work runs in a worker thread.
"""

import asyncio
import io
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from dareon.config import settings
from dareon.utils.structured_logging import StructuredLogger, track_operation

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".meta.json"

KB = 1024
MB = 1024 * KB

# Upper bound (inclusive) of each size bucket, checked in order
SIZE_BUCKETS = (
    ("tiny", 100 * KB),
    ("small", 1 * MB),
    ("medium", 10 * MB),
    ("large", 100 * MB),
    ("huge", None),
)

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
})


@dataclass
class FileEntry:
    name: str
    path: str
    size: int
    type: str
    modified: datetime
    metadata: Optional[Dict[str, Any]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "type": self.type,
            "modifiedDate": self.modified.isoformat(),
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


def size_bucket(size: int) -> str:
    for bucket, upper in SIZE_BUCKETS:
        if upper is None or size <= upper:
            return bucket
    return "huge"


SORTERS = {
    "type": (lambda e: e.type, False),
    "date": (lambda e: e.modified, True),   # newest first
    "size": (lambda e: e.size, True),       # largest first
    "name": (lambda e: e.name.lower(), False),
}


def sort_entries(entries: List[FileEntry], key: str) -> List[FileEntry]:
    if key not in SORTERS:
        raise ValueError(f"Invalid sort key: {key}")
    key_func, reverse = SORTERS[key]
    return sorted(entries, key=key_func, reverse=reverse)


def compute_stats(entries: List[FileEntry]) -> Dict[str, Any]:
    by_type: Dict[str, int] = {}
    by_date: Dict[str, int] = {}
    by_size: Dict[str, int] = {}

    for entry in entries:
        file_type = entry.type or "unknown"
        by_type[file_type] = by_type.get(file_type, 0) + 1

        day = entry.modified.date().isoformat()
        by_date[day] = by_date.get(day, 0) + 1

        bucket = size_bucket(entry.size)
        by_size[bucket] = by_size.get(bucket, 0) + 1

    return {
        "totalFiles": len(entries),
        "totalSize": sum(e.size for e in entries),
        "byType": by_type,
        "byDate": by_date,
        "bySize": by_size,
    }


def extract_pdf_metadata(data: bytes) -> Dict[str, Any]:
    """Page count and document info of a PDF; {} when it cannot be parsed."""
    try:
        reader = PdfReader(io.BytesIO(data))
        info = reader.metadata or {}
        return {
            "pageCount": len(reader.pages),
            "info": {str(k).lstrip("/"): str(v) for k, v in info.items()},
        }
    except (PyPdfError, ValueError, OSError) as e:
        logger.warning(f"⚠️ Could not read PDF metadata: {e}")
        return {}


class LocalFileService:
    """File operations on the local per-user storage tree."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.STORAGE_ROOT)

    def user_dir(self, user_id: str) -> Path:
        # user ids are Mongo ObjectId strings; reject anything path-like
        safe_id = os.path.basename(str(user_id))
        if not safe_id or safe_id in (".", ".."):
            raise ValueError("Invalid user id")
        return self.root / safe_id

    # ----- blocking helpers (run in a worker thread) -----

    def _read_sidecar(self, path: Path) -> Optional[Dict[str, Any]]:
        sidecar = path.with_name(path.name + SIDECAR_SUFFIX)
        if not sidecar.is_file():
            return None
        try:
            return json.loads(sidecar.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Unreadable metadata sidecar {sidecar}: {e}")
            return None

    def _walk(self, user_id: str) -> List[FileEntry]:
        base = self.user_dir(user_id)
        if not base.is_dir():
            return []

        entries: List[FileEntry] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames.sort()
            for filename in sorted(filenames):
                if filename.endswith(SIDECAR_SUFFIX):
                    continue
                full_path = Path(dirpath) / filename
                stat = full_path.stat()
                entries.append(FileEntry(
                    name=filename,
                    path=full_path.relative_to(base).as_posix(),
                    size=stat.st_size,
                    type=full_path.suffix[1:],
                    modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    metadata=self._read_sidecar(full_path),
                ))
        return entries

    def _write_upload(self, user_id: str, stored_name: str, data: bytes, metadata: Dict[str, Any]) -> FileEntry:
        base = self.user_dir(user_id)
        base.mkdir(parents=True, exist_ok=True)

        target = base / stored_name
        target.write_bytes(data)
        target.with_name(stored_name + SIDECAR_SUFFIX).write_text(
            json.dumps(metadata, default=str), encoding="utf-8"
        )

        stat = target.stat()
        return FileEntry(
            name=stored_name,
            path=stored_name,
            size=stat.st_size,
            type=target.suffix[1:],
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            metadata=metadata,
        )

    # ----- async API -----

    async def entries(self, user_id: str) -> List[FileEntry]:
        with track_operation("file_traversal", user_id=user_id):
            return await asyncio.to_thread(self._walk, user_id)

    async def list(self, user_id: str) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in await self.entries(user_id)]

    async def sort(self, user_id: str, key: str) -> List[Dict[str, Any]]:
        entries = await self.entries(user_id)
        return [e.to_dict() for e in sort_entries(entries, key)]

    async def search(self, user_id: str, query: str) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on file name or serialized metadata."""
        needle = (query or "").lower()
        results = []
        for entry in await self.entries(user_id):
            haystack = entry.name.lower()
            if entry.metadata:
                haystack += " " + json.dumps(entry.metadata, default=str).lower()
            if needle in haystack:
                results.append(entry.to_dict())
        return results

    async def stats(self, user_id: str) -> Dict[str, Any]:
        return compute_stats(await self.entries(user_id))

    async def save_upload(
        self,
        user_id: str,
        original_name: str,
        content_type: str,
        data: bytes,
    ) -> Dict[str, Any]:
        """Store one uploaded file plus its metadata sidecar; returns the file entry."""
        ext = Path(original_name or "").suffix.lower()
        stored_name = f"{uuid.uuid4()}{ext}"

        metadata: Dict[str, Any] = {
            "originalName": original_name,
            "mimeType": content_type,
            "uploadDate": datetime.now(timezone.utc).isoformat(),
        }
        if content_type == "application/pdf":
            metadata.update(await asyncio.to_thread(extract_pdf_metadata, data))

        entry = await asyncio.to_thread(self._write_upload, user_id, stored_name, data, metadata)

        info = entry.to_dict()
        StructuredLogger.log_file_operation("upload", user_id, info)
        return info
