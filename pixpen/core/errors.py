from __future__ import annotations


class AppError(RuntimeError):
    """Base application error."""


class BadRequest(AppError):
    """Invalid request data."""


class DependencyError(AppError):
    """External dependency failed (e.g., remote model)."""


class SessionNotFound(AppError):
    """No editing session with the given id."""


class SessionBusy(AppError):
    """Interaction requested while the session is segmenting or loading."""


class NoObjectsDetected(AppError):
    """The segmentation response yielded no usable entries."""


class DimensionUnavailable(AppError):
    """The original image has no readable pixel size."""


class AlignmentFailure(AppError):
    """A single object's mask could not be aligned; aborts the whole batch."""

    def __init__(self, object_id: str, message: str):
        super().__init__(f"Mask alignment failed for {object_id}: {message}")
        self.object_id = object_id


class CompositeFailure(AppError):
    """The edit mask could not be built."""


class TransportFailure(DependencyError):
    """Network or service error from a remote model."""

    def __init__(self, service: str, message: str):
        super().__init__(message)
        self.service = service


class EditRefused(TransportFailure):
    """The model answered without an image (blocked, stopped early, or replied with text)."""

    def __init__(self, service: str, reason: str, message: str):
        super().__init__(service, message)
        self.reason = reason


class SegmentationFailed(AppError):
    """Segmentation or alignment broke for a reason outside the typed failures above."""


class EditSuperseded(AppError):
    """The edit finished after the session's image had already changed; its result was dropped."""
