# === event_inspect/errors.py ===

from dataclasses import dataclass
from typing import Optional

MALFORMED_ASSET = "MalformedAsset"
MALFORMED_META = "MalformedMeta"
SCHEMA_VIOLATION = "SchemaViolation"


@dataclass(frozen=True)
class ErrorReport:
    """
    One line of the batch error listing: enough identity (file and/or AssetId)
    to locate the bad source file.
    """
    kind: str
    source: Optional[str]
    asset_id: Optional[str]
    detail: str

    def describe(self) -> str:
        where = self.source or "<unknown file>"
        if self.asset_id:
            where = f"{where} ({self.asset_id})"
        return f"{self.kind}: {where}: {self.detail}"


class InspectError(Exception):
    """Base class for per-file failures that are collected, not fatal."""

    kind = "InspectError"

    def __init__(self, detail: str, *, source: Optional[str] = None, asset_id: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.source = source
        self.asset_id = asset_id

    def to_report(self) -> ErrorReport:
        return ErrorReport(kind=self.kind, source=self.source, asset_id=self.asset_id, detail=str(self))


class MalformedAsset(InspectError):
    """
    The parser could not tokenize or structure the file content.
    line/column are 1-based; offset is the 0-based character (or, for decode
    failures, byte) offset where parsing broke.
    """

    kind = MALFORMED_ASSET

    def __init__(
        self,
        detail: str,
        *,
        source: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ):
        super().__init__(detail, source=source)
        self.line = line
        self.column = column
        self.offset = offset

    def __str__(self) -> str:
        if self.line is None:
            return self.detail
        return f"line {self.line}, column {self.column}: {self.detail}"


class MalformedMeta(InspectError):
    """Companion meta file is missing, unparseable or has no usable guid."""

    kind = MALFORMED_META


class SchemaViolation(InspectError):
    """A mapped document failed validation for its record variant."""

    kind = SCHEMA_VIOLATION

    def __init__(
        self,
        field: str,
        detail: str,
        *,
        asset_id: Optional[str] = None,
        source: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ):
        super().__init__(detail, source=source, asset_id=asset_id)
        self.field = field
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        msg = f"field `{self.field}`: {self.detail}"
        if self.expected is not None:
            msg += f" (expected {self.expected}, got {self.actual})"
        return msg


class InspectionAborted(Exception):
    """The input directory itself is unusable; nothing can be inspected."""
