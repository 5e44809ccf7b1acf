# ingest/errors.py
from __future__ import annotations

from typing import List, Optional


class IngestError(Exception):
    """Base class for ingestion pipeline errors."""


class FormatError(IngestError):
    """Fatal, whole-document: bytes could not be decoded as the declared format."""

    def __init__(self, fmt: str, cause: str):
        self.fmt = fmt
        self.cause = cause
        super().__init__(f"{fmt}: {cause}")


class InvalidPlanError(IngestError):
    """Fatal, commit-time: the resolution plan cannot be applied as given."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid resolution plan")


class ItemValidationError(IngestError):
    """A single repository write was rejected. Recorded per item; never fatal."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        super().__init__(reason)


class RepositoryUnavailableError(IngestError):
    """Infrastructure-level failure reaching the menu repository."""
