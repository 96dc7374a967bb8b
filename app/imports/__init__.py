"""Imports module: file parsing, validation and reconciliation writes."""

from app.imports.errors import (
    FileReadError,
    ImportPipelineError,
    NoFileSelectedError,
    NotAuthenticatedError,
    NothingToImportError,
    NoValidRecordsError,
    OperationInProgressError,
    PersistenceError,
    UnsupportedFormatError,
)
from app.imports.parsers import ACCEPTED_FORMATS, ParseResult, parse_file
from app.imports.schemas import (
    ClientRecord,
    CollectionRecord,
    ImportKind,
    ImportOutcome,
    ImportPreview,
    ImportStep,
    ProductRecord,
    SupervisorRecord,
    TechnicianRecord,
)
from app.imports.session import ImportSession, Notification
from app.imports.store import RecordStore, SqlAlchemyStore
from app.imports.validators import filter_valid_records, validate_records
from app.imports.writer import INVALIDATION_KEYS, ImportWriter, Owner

__all__ = [
    # Errors
    "ImportPipelineError",
    "UnsupportedFormatError",
    "FileReadError",
    "NoValidRecordsError",
    "NotAuthenticatedError",
    "PersistenceError",
    "NoFileSelectedError",
    "NothingToImportError",
    "OperationInProgressError",
    # Parsing and validation
    "ACCEPTED_FORMATS",
    "ParseResult",
    "parse_file",
    "filter_valid_records",
    "validate_records",
    # Records
    "ImportKind",
    "ImportStep",
    "CollectionRecord",
    "ProductRecord",
    "ClientRecord",
    "TechnicianRecord",
    "SupervisorRecord",
    "ImportPreview",
    "ImportOutcome",
    # Writing
    "RecordStore",
    "SqlAlchemyStore",
    "ImportWriter",
    "Owner",
    "INVALIDATION_KEYS",
    # Orchestration
    "ImportSession",
    "Notification",
]
