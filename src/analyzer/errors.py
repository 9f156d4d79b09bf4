# src/analyzer/errors.py
from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure that stops a page from being analysed."""

    kind = "analysis-error"

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "url": self.url, "message": self.message}


class FetchTransportError(AnalysisError):
    """DNS failure, refused connection or any other transport-level problem."""

    kind = "fetch-transport-error"


class FetchBadStatusError(AnalysisError):
    """The target answered, but not with 200 OK."""

    kind = "fetch-bad-status"

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        super().__init__(url, message or f"unexpected status code: {status_code}")
        self.status_code = status_code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class DocumentParseError(AnalysisError):
    kind = "parse-error"


class AnalysisTimeoutError(AnalysisError):
    kind = "timeout"
