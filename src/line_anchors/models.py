"""Data models for anchors, relocation results, and annotations."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ulid import new as new_ulid


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string with a 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class AnnotationType(str, Enum):
    """Category of a review annotation."""

    CONCERN = "concern"
    QUESTION = "question"
    SUGGESTION = "suggestion"
    BLOCKER = "blocker"


class AnnotationStatus(str, Enum):
    """Annotation lifecycle status."""

    OPEN = "open"
    RESOLVED = "resolved"


class Anchor(BaseModel, frozen=True):
    """Content-based reference to a line or line range.

    Anchors are immutable. A successful relocation produces a brand-new
    anchor built from the current file content instead of patching this one,
    so the context windows and fingerprint always describe the same location.

    - line/end_line: 1-indexed span; end_line=None means a single line
    - context_before: the K lines preceding ``line``, oldest first
    - context_after: the K lines following the span, nearest first
    - content_hash: truncated SHA-256 of the spanned text
    """

    line: int = Field(..., ge=1)
    end_line: int | None = Field(default=None, ge=1)
    context_before: str
    context_after: str
    content_hash: str = Field(..., pattern=r"^[a-f0-9]{12}$")

    @field_validator("end_line")
    @classmethod
    def validate_line_range(cls, v: int | None, info) -> int | None:
        """Validate that end_line >= line."""
        if v is not None and "line" in info.data and v < info.data["line"]:
            raise ValueError(f"end_line ({v}) must be >= line ({info.data['line']})")
        return v

    @property
    def span_length(self) -> int:
        """Number of lines after ``line`` covered by the span (0 for single lines)."""
        return 0 if self.end_line is None else self.end_line - self.line


class PositionMatch(BaseModel, frozen=True):
    """Score of one candidate line against a stored anchor."""

    score: float = Field(..., ge=0.0, le=1.0)
    content_changed: bool


class RelocationResult(BaseModel, frozen=True):
    """Outcome of one relocation attempt."""

    found: bool
    new_line: int | None = Field(default=None, ge=1)
    new_end_line: int | None = Field(default=None, ge=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    content_changed: bool

    @model_validator(mode="after")
    def validate_found_fields(self) -> "RelocationResult":
        """new_line is present exactly when the anchor was found."""
        if self.found and self.new_line is None:
            raise ValueError("new_line is required when found is True")
        if not self.found and (self.new_line is not None or self.new_end_line is not None):
            raise ValueError("new_line/new_end_line must be unset when found is False")
        return self


class Annotation(BaseModel):
    """A review comment attached to an anchored location.

    Owned by the annotation store; the engine only reads and replaces
    ``anchor``. Fields the store adds beyond these (replies, approvals
    metadata, ...) are kept as extras and written back untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=lambda: str(new_ulid()), min_length=1)
    anchor: Anchor
    type: AnnotationType = AnnotationType.CONCERN
    author: str = Field(..., min_length=1, max_length=200)
    timestamp: str = Field(default_factory=utc_now)
    content: str = Field(..., min_length=1, max_length=10000)
    status: AnnotationStatus = AnnotationStatus.OPEN

    @field_validator("timestamp")
    @classmethod
    def validate_utc_timestamp(cls, v: str) -> str:
        """Validate that timestamp is valid ISO 8601 UTC format."""
        try:
            dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
            if dt.tzinfo is None or dt.tzinfo.utcoffset(None) != timezone.utc.utcoffset(None):
                raise ValueError("Timestamp must be in UTC timezone")
            return v
        except (ValueError, AttributeError) as e:
            raise ValueError(f"Invalid ISO 8601 UTC timestamp: {v}") from e


class RelocatedAnnotation(BaseModel):
    """Per-annotation output of a bulk relocation pass."""

    annotation: Annotation
    relocation: RelocationResult
    updated_anchor: Anchor | None = None


class SyncResult(BaseModel):
    """Annotations partitioned by whether their anchor could be relocated."""

    synced: list[Annotation] = Field(default_factory=list)
    orphaned: list[Annotation] = Field(default_factory=list)


class AnnotationFile(BaseModel):
    """Root structure of a ``<file>.annotations.json`` sidecar."""

    model_config = ConfigDict(extra="allow")

    version: str = Field(default="1.0")
    file: str = Field(..., description="Path of the annotated source file (POSIX separators)")
    file_hash: str = Field(
        ...,
        pattern=r"^[a-f0-9]{12}$",
        description="Fingerprint of the source text at last sync",
    )
    annotations: list[Annotation] = Field(default_factory=list)


class SyncReport(BaseModel):
    """Summary of a sidecar sync, used for CLI output and logging."""

    file: str
    total: int = Field(..., ge=0)
    synced_count: int = Field(..., ge=0)
    orphaned_count: int = Field(..., ge=0)
    content_changed_count: int = Field(default=0, ge=0)
    orphaned_ids: list[str] = Field(default_factory=list)
    skipped: bool = Field(default=False, description="True when the source and anchors were unchanged and the sidecar was left as is")
    file_hash_before: str
    file_hash_after: str
