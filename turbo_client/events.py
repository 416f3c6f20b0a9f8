"""
Turbo Client - Upload Events

Lifecycle events emitted while signing and uploading a data item.

Events are delivered synchronously, in order, on the calling task.
Every callback slot is optional and receives exactly one payload:

    events = UploadEvents(
        on_progress=lambda p: print(f"{p.stage}: {p.percent:.0f}%"),
        on_upload_success=lambda result: print(result.id),
        on_error=lambda e: print(f"failed while {e.stage}: {e.error}"),
    )

``on_event`` receives every event as an ``UploadEvent`` after the
kind-specific slot has run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import SignedDataItem, UploadResult


class Stage(str, Enum):
    """The two phases of an authenticated upload."""

    SIGNING = "signing"
    UPLOADING = "uploading"


class EventKind(str, Enum):
    PROGRESS = "progress"
    SIGNING_SUCCESS = "signing_success"
    SIGNING_ERROR = "signing_error"
    UPLOAD_START = "upload_start"
    UPLOAD_SUCCESS = "upload_success"
    UPLOAD_ERROR = "upload_error"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of one stage, in bytes."""

    total_bytes: int
    processed_bytes: int
    stage: Stage

    @property
    def percent(self) -> float:
        # Nothing to process counts as complete.
        if self.total_bytes <= 0:
            return 100.0
        return self.processed_bytes * 100.0 / self.total_bytes


@dataclass(frozen=True)
class ErrorEvent:
    """A stage failure, delivered to the generic error slot."""

    error: BaseException
    stage: Stage


@dataclass(frozen=True)
class UploadEvent:
    """Envelope passed to ``on_event`` for every emitted event."""

    kind: EventKind
    stage: Stage
    payload: Any = None


_SLOTS = {
    EventKind.PROGRESS: "on_progress",
    EventKind.SIGNING_SUCCESS: "on_signing_success",
    EventKind.SIGNING_ERROR: "on_signing_error",
    EventKind.UPLOAD_START: "on_upload_start",
    EventKind.UPLOAD_SUCCESS: "on_upload_success",
    EventKind.UPLOAD_ERROR: "on_upload_error",
    EventKind.ERROR: "on_error",
}

_STAGE_ERRORS = {
    Stage.SIGNING: EventKind.SIGNING_ERROR,
    Stage.UPLOADING: EventKind.UPLOAD_ERROR,
}


@dataclass
class UploadEvents:
    """Optional callbacks for upload progress tracking."""

    on_progress: Callable[[ProgressEvent], None] | None = None
    on_signing_success: Callable[[SignedDataItem], None] | None = None
    on_signing_error: Callable[[BaseException], None] | None = None
    on_upload_start: Callable[[int], None] | None = None
    on_upload_success: Callable[[UploadResult], None] | None = None
    on_upload_error: Callable[[BaseException], None] | None = None
    on_error: Callable[[ErrorEvent], None] | None = None
    on_event: Callable[[UploadEvent], None] | None = None

    def emit(self, kind: EventKind, stage: Stage, payload: Any = None) -> None:
        """Deliver one event to its slot, then to ``on_event``."""
        callback = getattr(self, _SLOTS[kind])
        if callback is not None:
            callback(payload)
        if self.on_event is not None:
            self.on_event(UploadEvent(kind=kind, stage=stage, payload=payload))

    def progress(self, stage: Stage, total_bytes: int, processed_bytes: int) -> None:
        self.emit(
            EventKind.PROGRESS,
            stage,
            ProgressEvent(
                total_bytes=total_bytes, processed_bytes=processed_bytes, stage=stage
            ),
        )

    def stage_error(self, stage: Stage, error: BaseException) -> None:
        """Fire the stage-specific error slot, then the generic error slot."""
        self.emit(_STAGE_ERRORS[stage], stage, error)
        self.emit(EventKind.ERROR, stage, ErrorEvent(error=error, stage=stage))
