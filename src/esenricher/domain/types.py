"""Value types shared by the selector, the bulk engine and the store adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


type Batch = tuple[UpdateOperation, ...]


@dataclass(frozen=True, slots=True)
class DocumentRef:
    """Identifies exactly one document in the store."""

    namespace: str
    kind: str | None
    identifier: str

    def __str__(self) -> str:
        if self.kind:
            return f"{self.namespace}/{self.kind}/{self.identifier}"
        return f"{self.namespace}/{self.identifier}"


@dataclass(frozen=True, slots=True)
class EqualityFilter:
    field: str
    value: str


@dataclass(frozen=True, slots=True)
class UpdateOperation:
    """A partial update of one document, queued once and dispatched once."""

    target: DocumentRef
    payload: Mapping[str, Any]
    upsert: bool = False


@dataclass(frozen=True, slots=True)
class DispatchFailure:
    """Why the store did not apply an operation."""

    reason: str
    status: int | None = None
    error_type: str | None = None

    def __str__(self) -> str:
        prefix = f"[{self.status}] " if self.status is not None else ""
        kind = f"{self.error_type}: " if self.error_type else ""
        return f"{prefix}{kind}{self.reason}"


@dataclass(frozen=True, slots=True)
class OperationResult:
    target: DocumentRef
    failure: DispatchFailure | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, target: DocumentRef) -> OperationResult:
        return cls(target=target)

    @classmethod
    def failed(
        cls,
        target: DocumentRef,
        reason: str,
        *,
        status: int | None = None,
        error_type: str | None = None,
    ) -> OperationResult:
        return cls(
            target=target,
            failure=DispatchFailure(reason=reason, status=status, error_type=error_type),
        )


@dataclass(frozen=True, slots=True)
class SearchPage:
    """One page of matches as reported by the store."""

    refs: Sequence[DocumentRef]
    total_matches: int
    took_ms: int | None = None


@dataclass(frozen=True, slots=True)
class EnrichmentRequest:
    namespace: str
    kind: str | None
    filter: EqualityFilter
    payload: Mapping[str, Any]
    upsert: bool = False


class JobOutcome(StrEnum):
    NO_MATCHES = "no_matches"
    PARTIAL_FAILURE = "partial_failure"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True, slots=True)
class JobSummary:
    """Final, immutable account of one enrichment run."""

    total_selected: int
    total_succeeded: int
    total_failed: int
    failures: tuple[OperationResult, ...] = field(default_factory=tuple)
    total_matches: int | None = None
    truncated: bool = False
    cancelled: bool = False

    @property
    def total_dispatched(self) -> int:
        return self.total_succeeded + self.total_failed

    @property
    def outcome(self) -> JobOutcome:
        if self.total_selected == 0:
            return JobOutcome.NO_MATCHES
        if self.total_failed > 0:
            return JobOutcome.PARTIAL_FAILURE
        return JobOutcome.SUCCEEDED

    @classmethod
    def empty(cls, *, total_matches: int | None = 0) -> JobSummary:
        return cls(total_selected=0, total_succeeded=0, total_failed=0, total_matches=total_matches)
