"""
Error taxonomy for catalog sync runs

Every failure carries an ErrorKind tag plus whatever context is known at the
point it was raised (spreadsheet row number, product code, underlying cause).
Only VALIDATION errors are tolerated mid-run; every other kind aborts.
"""
from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    CONFIG = "config"
    STRUCTURE = "structure"
    VALIDATION = "validation"
    IMAGE_DOWNLOAD_FAILED = "image_download_failed"
    IMAGE_MISSING = "image_missing"
    REMOTE = "remote"


class SyncError(Exception):
    """Base exception for catalog sync errors"""

    kind: ErrorKind = ErrorKind.CONFIG

    def __init__(
        self,
        message: str,
        *,
        row_number: Optional[int] = None,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.row_number = row_number
        self.code = code
        self.cause = cause

    def __str__(self) -> str:
        context = []
        if self.row_number is not None:
            context.append(f"row {self.row_number}")
        if self.code:
            context.append(f"code {self.code}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigError(SyncError):
    """Missing credentials or unusable run configuration"""

    kind = ErrorKind.CONFIG


class StructureError(SyncError):
    """Table is missing one or more required columns"""

    kind = ErrorKind.STRUCTURE

    def __init__(self, missing_columns: List[str]):
        super().__init__(f"Missing required columns: {', '.join(missing_columns)}")
        self.missing_columns = list(missing_columns)


MissingColumns = StructureError


class ValidationError(SyncError):
    """A single row failed local validation and is skipped"""

    kind = ErrorKind.VALIDATION


class ImageDownloadFailed(SyncError):
    kind = ErrorKind.IMAGE_DOWNLOAD_FAILED


class ImageMissing(SyncError):
    kind = ErrorKind.IMAGE_MISSING


class RemoteError(SyncError):
    """Any Stripe API call failure"""

    kind = ErrorKind.REMOTE

    def __init__(self, message: str, *, status_code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.status_code = status_code


RemoteUnavailable = RemoteError
