"""
Error taxonomy for the upload and query pipeline.
Each error carries the HTTP status the API layer answers with.
"""
from typing import Optional


class AnalystError(Exception):
    """Base error for the data analyst service."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AnalystError):
    """Bad upload type/size or missing request fields."""

    status_code = 400


class NotFoundError(AnalystError):
    """Unknown dataset id."""

    status_code = 404


class ParseError(AnalystError):
    """Unreadable file (500) or a file without data rows (400)."""

    status_code = 500


class UpstreamAIError(AnalystError):
    """Narrative service unavailable, timed out or erroring."""

    status_code = 500


class InternalError(AnalystError):
    """Anything unexpected."""

    status_code = 500
