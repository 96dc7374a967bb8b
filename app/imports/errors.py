"""Import pipeline errors.

Each error carries a user-facing ``message``. Routers and the import session
catch them at the stage boundary and turn them into a single notification.
"""

from typing import Iterable


class ImportPipelineError(Exception):
    """Base class for every failure surfaced by the import pipeline."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(ImportPipelineError):
    """The file extension is not accepted for the selected kind."""

    def __init__(self, kind: str, extension: str, accepted: Iterable[str]):
        self.kind = kind
        self.extension = extension
        self.accepted = tuple(accepted)
        formats = ", ".join(ext.upper() for ext in self.accepted)
        shown = f".{extension}" if extension else "without extension"
        super().__init__(f"Unsupported file format {shown} for {kind}. Use {formats}.")


class FileReadError(ImportPipelineError):
    """The file has a supported extension but its content could not be read."""


class NoValidRecordsError(ImportPipelineError):
    """The file was read but no record passed validation."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(
            f"No valid {kind} records were extracted from the file. "
            "Check that the columns are correct and the required fields are filled in."
        )


class NotAuthenticatedError(ImportPipelineError):
    """No owner account is available for the write."""

    def __init__(self, message: str = "Not authenticated. Log in to import data."):
        super().__init__(message)


class PersistenceError(ImportPipelineError):
    """The store rejected a batch. ``message`` is the store's own text."""


class NoFileSelectedError(ImportPipelineError):
    def __init__(self, message: str = "No file selected. Choose a file to import."):
        super().__init__(message)


class NothingToImportError(ImportPipelineError):
    def __init__(self, message: str = "No data to import. Extract data before confirming."):
        super().__init__(message)


class OperationInProgressError(ImportPipelineError):
    """A parse or write is already running for this import session."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"An import {operation} is already in progress.")
