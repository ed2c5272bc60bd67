"""Document attachments for repositions.

Files land on local disk under ``settings.upload_dir`` with a generated
name (``{field}-{epoch_ms}-{random}{ext}``); the Document row keeps the
client's original name.  All files of a request are validated before the
first one is written.  Files written during a request are tracked on the
session and deleted again by ``get_db`` when the transaction rolls back.
"""

import logging
import random
import time
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.middleware.exceptions import NotFoundError, ValidationError
from app.models.document import Document
from app.models.user import User

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "documents"
WRITTEN_KEY = "written_uploads"


def upload_root() -> Path:
    root = Path(settings.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def stored_name(fieldname: str, original_name: str) -> str:
    ext = Path(original_name).suffix.lower()
    return f"{fieldname}-{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{ext}"


async def _read_validated(files: list[UploadFile]) -> list[tuple[UploadFile, bytes]]:
    if len(files) > settings.max_upload_files:
        raise ValidationError(
            f"At most {settings.max_upload_files} files can be uploaded at once"
        )

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    allowed = settings.upload_extensions
    validated = []
    for upload in files:
        name = upload.filename or ""
        ext = Path(name).suffix.lower().lstrip(".")
        if ext not in allowed:
            raise ValidationError(
                f"File type not allowed: {name or '(unnamed)'} "
                f"(allowed: {', '.join(sorted(allowed))})"
            )
        content = await upload.read()
        if len(content) > max_bytes:
            raise ValidationError(
                f"File {name} exceeds {settings.max_upload_size_mb} MB"
            )
        validated.append((upload, content))
    return validated


async def save_documents(
    db: AsyncSession,
    reposition_id: str,
    files: list[UploadFile],
    user: User,
    fieldname: str = UPLOAD_FIELD,
) -> list[Document]:
    """Validate, store and register ``files`` for a reposition."""
    validated = await _read_validated(files)
    root = upload_root()

    documents = []
    for upload, content in validated:
        filename = stored_name(fieldname, upload.filename)
        path = root / filename
        path.write_bytes(content)
        db.info.setdefault(WRITTEN_KEY, []).append(path)

        document = Document(
            reposition_id=reposition_id,
            filename=filename,
            original_name=upload.filename,
            size=len(content),
            path=str(path),
            uploaded_by=user.id,
        )
        db.add(document)
        documents.append(document)

    if documents:
        await db.flush()
        logger.info("Stored %d document(s) for reposition %s", len(documents), reposition_id)
    return documents


def forget_written_files(db: AsyncSession) -> None:
    """Keep the files written on ``db`` (the transaction committed)."""
    db.info.pop(WRITTEN_KEY, None)


def discard_written_files(db: AsyncSession) -> None:
    """Delete the files written on ``db`` (the transaction rolled back)."""
    for path in db.info.pop(WRITTEN_KEY, []):
        path.unlink(missing_ok=True)
        logger.info("Removed orphaned upload %s", path.name)


async def list_documents(db: AsyncSession, reposition_id: str) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.reposition_id == reposition_id)
        .order_by(Document.created_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def resolve_stored_file(filename: str) -> Path:
    """Path of a stored upload; refuses anything outside the upload directory."""
    if not filename or Path(filename).name != filename or filename in (".", ".."):
        raise ValidationError("Invalid file name")

    root = upload_root().resolve()
    path = (root / filename).resolve()
    if path.parent != root:
        raise ValidationError("Invalid file name")
    if not path.is_file():
        raise NotFoundError("File", filename)
    return path
