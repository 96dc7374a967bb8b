"""Import API routes.

The import runs in two requests: ``/preview`` parses and validates an upload
and keeps the records in a server-side session; ``/execute`` writes them. A
failed write keeps the session so the client can retry without uploading the
file again.
"""

import logging
from datetime import datetime, timedelta
from typing import Annotated, Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.dependencies import Cache, CurrentUser, get_db
from app.imports.errors import (
    ImportPipelineError,
    NotAuthenticatedError,
    OperationInProgressError,
    PersistenceError,
)
from app.imports.parsers import ACCEPTED_FORMATS
from app.imports.schemas import (
    ImportExecuteRequest,
    ImportFormats,
    ImportKind,
    ImportOutcome,
    ImportPreview,
)
from app.imports.session import ImportSession
from app.imports.store import SqlAlchemyStore
from app.imports.writer import ImportWriter, Owner

logger = logging.getLogger(__name__)

router = APIRouter()

# In-memory import sessions keyed by session id
_import_sessions: dict[str, dict[str, Any]] = {}


def _create_import_session(user_id: str, session: ImportSession) -> str:
    """Store an import session for later execution. Returns its id."""
    _cleanup_expired_sessions()
    session_id = str(uuid4())
    now = datetime.utcnow()
    _import_sessions[session_id] = {
        "user_id": str(user_id),
        "session": session,
        "created_at": now,
        "expires_at": now + timedelta(minutes=get_settings().import_session_ttl_minutes),
    }
    return session_id


def _get_import_session(session_id: str, user_id: str) -> Optional[dict[str, Any]]:
    """Return the stored session if it exists, belongs to the user and is not expired."""
    entry = _import_sessions.get(session_id)
    if entry is None:
        return None
    if entry["expires_at"] < datetime.utcnow():
        del _import_sessions[session_id]
        return None
    if entry["user_id"] != str(user_id):
        return None
    return entry


def _delete_import_session(session_id: str) -> None:
    _import_sessions.pop(session_id, None)


def _cleanup_expired_sessions() -> None:
    now = datetime.utcnow()
    expired = [sid for sid, entry in _import_sessions.items() if entry["expires_at"] < now]
    for sid in expired:
        del _import_sessions[sid]


def pipeline_error_status(error: ImportPipelineError) -> int:
    """HTTP status for a pipeline error. Shared with the app-level handler."""
    if isinstance(error, NotAuthenticatedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, PersistenceError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(error, OperationInProgressError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@router.get("/formats", response_model=ImportFormats)
async def list_formats():
    """Accepted file extensions for each import kind."""
    return ImportFormats(formats={kind: list(exts) for kind, exts in ACCEPTED_FORMATS.items()})


@router.post("/preview", response_model=ImportPreview)
async def preview_import(
    current_user: CurrentUser,
    kind: Annotated[ImportKind, Form()],
    file: Annotated[UploadFile, File()],
):
    """Parse and validate an uploaded file.

    Returns the validated records and a session id to pass to ``/execute``.
    Unsupported formats, unreadable files and files without a single valid
    record are rejected with 400 and distinct messages.
    """
    content = await file.read()
    max_bytes = get_settings().max_import_file_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {get_settings().max_import_file_mb} MB limit",
        )

    session = ImportSession(kind=kind)
    session.select_file(file.filename or "", content)
    records = await session.parse()
    if records is None:
        error = session.error
        raise HTTPException(status_code=pipeline_error_status(error), detail=error.message)

    session_id = _create_import_session(current_user.id, session)
    return ImportPreview(
        session_id=session_id,
        kind=session.kind,
        filename=file.filename or "",
        total=len(records),
        records=records,
        warnings=session.warnings,
    )


@router.post("/execute", response_model=ImportOutcome)
async def execute_import(
    data: ImportExecuteRequest,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    cache: Cache,
):
    """Write the records of a previewed import.

    On a store failure the session is kept so the same preview can be
    submitted again.
    """
    entry = _get_import_session(data.session_id, current_user.id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Import session not found or expired",
        )

    session: ImportSession = entry["session"]
    writer = ImportWriter(SqlAlchemyStore(db), cache)
    try:
        outcome = await session.confirm_import(writer, Owner(user_id=str(current_user.id)))
    except OperationInProgressError as e:
        raise HTTPException(status_code=pipeline_error_status(e), detail=e.message)

    if outcome is None:
        error = session.error
        raise HTTPException(status_code=pipeline_error_status(error), detail=error.message)

    _delete_import_session(data.session_id)
    return outcome


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_import(session_id: str, current_user: CurrentUser):
    """Drop a previewed import without writing it."""
    if _get_import_session(session_id, current_user.id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Import session not found or expired",
        )
    _delete_import_session(session_id)
