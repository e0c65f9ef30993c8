#!/usr/bin/env python3
"""
Error taxonomy of the catalog pipeline.

Exceptions are raised for fatal conditions and carry a to_dict() for the
JSON reports printed by the CLI. ExtractionWarning is a plain record: it is
logged and collected, never raised.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ExtractionWarning:
    """Malformed marker invocation found while scanning source code."""
    path: str
    line: int
    marker: str
    message: str

    def to_dict(self) -> dict:
        return {
            "type": "EXTRACTION_WARNING",
            "file": self.path,
            "line": self.line,
            "marker": self.marker,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.marker}(): {self.message}"


class LangcError(Exception):
    """Base class for all pipeline errors."""

    error_type = "ERROR"

    def to_dict(self) -> dict:
        return {"type": self.error_type, "message": str(self)}


class ParseError(LangcError):
    """A catalog's text could not be parsed or failed a structural check."""

    error_type = "PARSE_ERROR"

    def __init__(self, message: str, line: int = 0, token: str = "", path: Optional[str] = None):
        self.message = message
        self.line = line
        self.token = token
        self.path = path
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"{self.path or '<catalog>'}:{self.line}"
        if self.token:
            return f"{where}: {self.message} (at {self.token!r})"
        return f"{where}: {self.message}"

    def with_path(self, path: Optional[str]) -> "ParseError":
        return ParseError(self.message, line=self.line, token=self.token, path=path)

    def to_dict(self) -> dict:
        return {
            "type": self.error_type,
            "file": self.path,
            "line": self.line,
            "token": self.token,
            "message": self.message,
        }


class ValidationError(LangcError):
    """A semantically invalid catalog, fatal for the locale it belongs to."""

    error_type = "VALIDATION_ERROR"

    def __init__(self, message: str, locale: Optional[str] = None):
        self.locale = locale
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"type": self.error_type, "locale": self.locale, "message": str(self)}


class AcquisitionError(LangcError):
    """The raw catalog of a locale could not be obtained."""

    error_type = "ACQUISITION_ERROR"

    def __init__(self, message: str, locale: Optional[str] = None):
        self.locale = locale
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"type": self.error_type, "locale": self.locale, "message": str(self)}


class FormatCapacityError(LangcError):
    """A size or count limit of a binary format would be exceeded."""

    error_type = "FORMAT_CAPACITY_ERROR"

    def __init__(self, message: str, limit: int, actual: int):
        self.limit = limit
        self.actual = actual
        super().__init__(f"{message} (limit {limit}, got {actual})")

    def to_dict(self) -> dict:
        return {
            "type": self.error_type,
            "message": str(self),
            "limit": self.limit,
            "actual": self.actual,
        }


class PipelineError(LangcError):
    """Fatal failure of a whole compile operation."""

    error_type = "PIPELINE_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None, issues: Optional[list] = None):
        self.cause = cause
        self.issues = list(issues or [])
        super().__init__(message)

    def to_dict(self) -> dict:
        data = {"type": self.error_type, "message": str(self)}
        if isinstance(self.cause, LangcError):
            data["cause"] = self.cause.to_dict()
        elif self.cause is not None:
            data["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        if self.issues:
            data["issues"] = [issue.to_dict() for issue in self.issues]
        return data
