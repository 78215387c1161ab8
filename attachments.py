# attachments.py
"""Bill attachments (scanned PDFs and photos).

The store hands back a url and a storage id; the id is what gets deleted
later. Deleting an id that is already gone is not an error.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from errors import DependencyFailure, ValidationError

logger = logging.getLogger(__name__)

ATTACHMENT_DIR = os.getenv("LEDGER_ATTACHMENT_DIR", "attachments")
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class AttachmentUpload:
    filename: str
    content_type: str
    content: bytes


@dataclass(frozen=True)
class StoredAttachment:
    url: str
    storage_id: str


@dataclass(frozen=True)
class ReleaseResult:
    storage_id: str
    ok: bool
    error: Optional[str] = None


def validate_upload(upload: AttachmentUpload) -> None:
    if upload.content_type not in ALLOWED_TYPES:
        raise ValidationError("Only PDF and image files are allowed", field="attachment")
    if len(upload.content) > MAX_ATTACHMENT_SIZE:
        raise ValidationError("Attachment exceeds 10MB", field="attachment")


class AttachmentStore:
    """Interface for wherever bill files live."""

    def save(self, upload: AttachmentUpload) -> StoredAttachment:
        raise NotImplementedError

    def delete(self, storage_id: str) -> None:
        raise NotImplementedError


class LocalAttachmentStore(AttachmentStore):
    def __init__(self, root=ATTACHMENT_DIR, base_url: str = "/attachments"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def save(self, upload: AttachmentUpload) -> StoredAttachment:
        validate_upload(upload)
        storage_id = f"bills/{uuid.uuid4().hex}{ALLOWED_TYPES[upload.content_type]}"
        path = self.root / storage_id
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(upload.content)
        except OSError as e:
            raise DependencyFailure(f"Could not store attachment: {e}", field="attachment") from e
        logger.info("Stored attachment %s (%s, %d bytes)", storage_id, upload.filename, len(upload.content))
        return StoredAttachment(url=f"{self.base_url}/{storage_id}", storage_id=storage_id)

    def delete(self, storage_id: str) -> None:
        (self.root / storage_id).unlink(missing_ok=True)


def release(store: AttachmentStore, storage_id: str) -> ReleaseResult:
    """Best-effort delete. Failures are logged and reported, never raised."""
    if not storage_id:
        return ReleaseResult(storage_id="", ok=True)
    try:
        store.delete(storage_id)
    except Exception as e:
        logger.warning("Could not release attachment %s: %s", storage_id, e)
        return ReleaseResult(storage_id=storage_id, ok=False, error=str(e))
    return ReleaseResult(storage_id=storage_id, ok=True)
