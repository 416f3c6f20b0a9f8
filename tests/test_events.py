"""Tests for upload lifecycle events."""

from turbo_client.events import (
    ErrorEvent,
    EventKind,
    ProgressEvent,
    Stage,
    UploadEvent,
    UploadEvents,
)
from turbo_client.models import UploadResult


class TestProgressEvent:
    def test_percent(self):
        assert ProgressEvent(200, 0, Stage.UPLOADING).percent == 0.0
        assert ProgressEvent(200, 50, Stage.UPLOADING).percent == 25.0
        assert ProgressEvent(200, 200, Stage.UPLOADING).percent == 100.0

    def test_empty_payload_is_complete(self):
        assert ProgressEvent(0, 0, Stage.SIGNING).percent == 100.0


class TestUploadEvents:
    """Tests for event dispatch."""

    def test_missing_slots_are_noops(self):
        events = UploadEvents()

        events.progress(Stage.SIGNING, 10, 0)
        events.emit(EventKind.UPLOAD_START, Stage.UPLOADING, 10)
        events.stage_error(Stage.UPLOADING, RuntimeError("boom"))

    def test_slot_receives_payload(self):
        received = []
        result = UploadResult(id="abc", owner="me")
        events = UploadEvents(on_upload_success=received.append)

        events.emit(EventKind.UPLOAD_SUCCESS, Stage.UPLOADING, result)

        assert received == [result]

    def test_on_event_after_slot(self):
        """The catch-all sees every event, after the kind-specific slot."""
        calls = []
        events = UploadEvents(
            on_upload_start=lambda size: calls.append(("slot", size)),
            on_event=lambda event: calls.append(("event", event)),
        )

        events.emit(EventKind.UPLOAD_START, Stage.UPLOADING, 42)

        assert calls == [
            ("slot", 42),
            ("event", UploadEvent(kind=EventKind.UPLOAD_START, stage=Stage.UPLOADING, payload=42)),
        ]

    def test_progress_payload(self):
        received = []
        events = UploadEvents(on_progress=received.append)

        events.progress(Stage.SIGNING, 13, 13)

        assert received == [ProgressEvent(total_bytes=13, processed_bytes=13, stage=Stage.SIGNING)]

    def test_stage_error_fires_stage_slot_then_generic(self):
        calls = []
        error = RuntimeError("boom")
        events = UploadEvents(
            on_signing_error=lambda e: calls.append(("signing_error", e)),
            on_upload_error=lambda e: calls.append(("upload_error", e)),
            on_error=lambda e: calls.append(("error", e)),
        )

        events.stage_error(Stage.SIGNING, error)

        assert calls == [
            ("signing_error", error),
            ("error", ErrorEvent(error=error, stage=Stage.SIGNING)),
        ]

    def test_upload_stage_error(self):
        kinds = []
        events = UploadEvents(on_event=lambda event: kinds.append(event.kind))

        events.stage_error(Stage.UPLOADING, RuntimeError("boom"))

        assert kinds == [EventKind.UPLOAD_ERROR, EventKind.ERROR]

    def test_stage_values(self):
        assert Stage.SIGNING.value == "signing"
        assert Stage.UPLOADING.value == "uploading"
