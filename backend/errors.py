# errors.py
from __future__ import annotations
from typing import Optional


class InterviewHelperError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail

    def to_dict(self):
        body = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ConfigurationError(InterviewHelperError):
    status_code = 500


class UpstreamError(InterviewHelperError):
    status_code = 502


class ResponseParseError(InterviewHelperError):
    status_code = 502


class InputError(InterviewHelperError):
    status_code = 400
