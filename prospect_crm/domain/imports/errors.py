"""Exceptions raised by the import pipeline."""


class ImportPipelineError(Exception):
    """Base exception for import pipeline failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ImportDecodeError(ImportPipelineError):
    """Raised when the uploaded payload cannot be decoded or deserialized."""


class UnsupportedFileTypeError(ImportPipelineError):
    """Raised when an upload is neither delimited text nor JSON."""

    def __init__(self, filename: str, message: str = None):
        self.filename = filename
        super().__init__(message or "Please upload a CSV or JSON file.")


class NothingStagedError(ImportPipelineError):
    """Raised when commit is requested without a successfully processed file."""

    def __init__(self, message: str = None):
        super().__init__(message or "No processed import is waiting to be committed.")
