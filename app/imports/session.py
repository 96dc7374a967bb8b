"""Import session: the state machine driving one import dialog.

States::

    upload -> parsing -> (parse_error -> upload | preview)
    preview -> importing -> (import_error -> preview | done -> upload)

Every pipeline error is caught here, stored on ``error`` and turned into a
single notification; the session always ends in a retryable state. Only one
parse or write may be in flight at a time.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from app.imports.errors import (
    ImportPipelineError,
    NoFileSelectedError,
    NothingToImportError,
    OperationInProgressError,
)
from app.imports.parsers import parse_file
from app.imports.schemas import ImportKind, ImportOutcome, ImportStep
from app.imports.validators import validate_records
from app.imports.writer import ImportWriter, Owner

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A user-visible message produced by the session."""

    title: str
    description: str
    level: str = "info"  # info, success, warning, error


@dataclass
class SelectedFile:
    filename: str
    content: bytes


class ImportSession:
    """Holds the transient state of one import.

    Args:
        kind: Initial import kind.
        on_import_success: Called with ``(kind, outcome)`` after a successful
            write, e.g. to close the dialog or refresh listings.
    """

    def __init__(
        self,
        kind: ImportKind = ImportKind.COLLECTIONS,
        on_import_success: Optional[Callable[[ImportKind, ImportOutcome], None]] = None,
    ):
        self.kind = ImportKind(kind)
        self.on_import_success = on_import_success
        self.selected_file: Optional[SelectedFile] = None
        self.records: Optional[list[BaseModel]] = None
        self.warnings: list[str] = []
        self.error: Optional[ImportPipelineError] = None
        self.notifications: list[Notification] = []
        self.history: list[ImportStep] = [ImportStep.UPLOAD]
        self.is_parsing = False
        self.is_pending = False

    @property
    def step(self) -> ImportStep:
        return self.history[-1]

    def _enter(self, step: ImportStep) -> None:
        if step != self.step:
            logger.debug("Import session %s -> %s", self.step.value, step.value)
        self.history.append(step)

    def _notify(self, title: str, description: str, level: str = "info") -> None:
        self.notifications.append(Notification(title=title, description=description, level=level))

    def _guard(self) -> None:
        if self.is_parsing:
            raise OperationInProgressError("parse")
        if self.is_pending:
            raise OperationInProgressError("write")

    # -- file acquisition ---------------------------------------------------

    def select_file(self, filename: str, content: bytes) -> None:
        """Choose a new file; drops previously extracted records and errors."""
        self._guard()
        self.selected_file = SelectedFile(filename=filename, content=content)
        self.records = None
        self.warnings = []
        self.error = None
        self._enter(ImportStep.UPLOAD)

    def select_kind(self, kind: ImportKind) -> None:
        """Switch kind; discards the selected file and any extracted records."""
        self._guard()
        self.kind = ImportKind(kind)
        self.selected_file = None
        self.records = None
        self.warnings = []
        self.error = None
        self._enter(ImportStep.UPLOAD)

    # -- parse + validate ---------------------------------------------------

    async def parse(self) -> Optional[list[BaseModel]]:
        """Parse and validate the selected file.

        Returns:
            list | None: Validated records, or None when the parse failed.
        """
        self._guard()
        if self.selected_file is None:
            self.error = NoFileSelectedError()
            self._notify("No file selected", self.error.message, "error")
            return None

        self.is_parsing = True
        self.records = None
        self.warnings = []
        self.error = None
        self._enter(ImportStep.PARSING)
        try:
            result = await run_in_threadpool(
                parse_file, self.selected_file.filename, self.selected_file.content, self.kind
            )
            for warning in result.warnings:
                self._notify("Simulated extraction", warning, "warning")
            valid = validate_records(result.records, self.kind)
        except ImportPipelineError as e:
            logger.warning("Parsing %s failed: %s", self.selected_file.filename, e.message)
            self.error = e
            self._notify("Could not process file", e.message, "error")
            self._enter(ImportStep.PARSE_ERROR)
            self._enter(ImportStep.UPLOAD)
            return None
        finally:
            self.is_parsing = False

        self.records = valid
        self.warnings = list(result.warnings)
        self._notify("Data extracted", f"Found {len(valid)} records to import.", "success")
        self._enter(ImportStep.PREVIEW)
        return valid

    # -- write --------------------------------------------------------------

    async def confirm_import(
        self, writer: ImportWriter, owner: Optional[Owner]
    ) -> Optional[ImportOutcome]:
        """Write the previewed records.

        On failure the records are kept and the session returns to preview so
        the write can be retried without parsing again.
        """
        self._guard()
        if not self.records:
            self.error = NothingToImportError()
            self._notify("Nothing to import", self.error.message, "error")
            return None

        self.is_pending = True
        self.error = None
        self._enter(ImportStep.IMPORTING)
        try:
            outcome = await run_in_threadpool(writer.write, self.kind, self.records, owner)
        except ImportPipelineError as e:
            logger.warning("Import of %s failed: %s", self.kind.value, e.message)
            self.error = e
            self._notify(f"Error importing {self.kind.value}", e.message, "error")
            self._enter(ImportStep.IMPORT_ERROR)
            self._enter(ImportStep.PREVIEW)
            return None
        finally:
            self.is_pending = False

        self._enter(ImportStep.DONE)
        self._notify(f"Import of {self.kind.value} complete", outcome.message, "success")
        self.selected_file = None
        self.records = None
        self.warnings = []
        if self.on_import_success is not None:
            self.on_import_success(self.kind, outcome)
        self._enter(ImportStep.UPLOAD)
        return outcome
