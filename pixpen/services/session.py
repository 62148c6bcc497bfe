from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

from loguru import logger

from pixpen.core.errors import SessionNotFound
from pixpen.models.domain import SegmentObject, SelectionState
from pixpen.services import selection


class SessionStatus(str, Enum):
    IDLE = "idle"
    SEGMENTING = "segmenting"
    LOADING = "loading"


@dataclass
class EditSession:
    """
    State of one editing session: current image, detected objects, selection.

    Every segmentation or edit is tagged with a generation token. Results are
    applied only if their token is still the latest one, so a slow request
    never overwrites state produced after a newer upload, undo/redo or edit.
    """
    id: str
    image: bytes
    image_size: tuple[int, int]
    objects: list[SegmentObject] = field(default_factory=list)
    state: SelectionState = field(default_factory=SelectionState)
    status: SessionStatus = SessionStatus.IDLE
    segmentation_error: str | None = None
    _generation: int = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.IDLE and bool(self.objects)

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def _next_token(self) -> int:
        self._generation += 1
        return self._generation

    # ---- segmentation lifecycle ----

    def begin_segmentation(self) -> int:
        token = self._next_token()
        self.status = SessionStatus.SEGMENTING
        self.segmentation_error = None
        return token

    def apply_segmentation(self, token: int, objects: list[SegmentObject]) -> bool:
        if not self.is_current(token):
            logger.info(f"[{self.id}] Discarding stale segmentation result (token {token} < {self._generation})")
            return False
        self.objects = list(objects)
        self.state = SelectionState()
        self.status = SessionStatus.IDLE
        return True

    def fail_segmentation(self, token: int, message: str) -> None:
        if not self.is_current(token):
            return
        self.objects = []
        self.state = SelectionState()
        self.status = SessionStatus.IDLE
        self.segmentation_error = message

    # ---- edit lifecycle ----

    def begin_loading(self) -> int:
        self.status = SessionStatus.LOADING
        return self._generation

    def end_loading(self, token: int) -> None:
        if self.is_current(token):
            self.status = SessionStatus.IDLE

    def replace_image(self, image: bytes, image_size: tuple[int, int]) -> int:
        """New upload, history navigation or committed edit: everything derived is dropped."""
        self.image = image
        self.image_size = image_size
        self.objects = []
        self.state = SelectionState()
        self.status = SessionStatus.IDLE
        self.segmentation_error = None
        return self._next_token()

    # ---- interaction ----

    def pointer_move(self, x: float, y: float) -> str | None:
        if not self.is_active:
            return None
        hit = selection.hit_test(self.objects, x, y, *self.image_size)
        self.state = selection.hover(self.state, hit)
        return hit

    def pointer_leave(self) -> None:
        self.state = selection.hover(self.state, None)

    def click(self, x: float, y: float) -> str | None:
        if not self.is_active:
            return None
        hit = selection.hit_test(self.objects, x, y, *self.image_size)
        if hit is not None:
            self.state = selection.toggle(self.state, hit)
        return hit

    def toggle_selection(self, object_id: str) -> None:
        if self.is_active and any(obj.id == object_id for obj in self.objects):
            self.state = selection.toggle(self.state, object_id)

    def clear_selection(self) -> None:
        self.state = selection.clear(self.state)

    def remove_from_selection(self, object_id: str) -> None:
        self.state = selection.remove(self.state, object_id)

    @property
    def selected_objects(self) -> list[SegmentObject]:
        return selection.selected_objects(self.objects, self.state)


@dataclass
class SessionStore:
    """In-memory sessions keyed by id. Nothing is persisted."""
    _sessions: dict[str, EditSession] = field(default_factory=dict)

    def create(self, image: bytes, image_size: tuple[int, int]) -> EditSession:
        session = EditSession(id=uuid4().hex, image=image, image_size=image_size)
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id} ({image_size[0]}x{image_size[1]})")
        return session

    def get(self, session_id: str) -> EditSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(f"Session '{session_id}' not found") from None

    def drop(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFound(f"Session '{session_id}' not found")
        logger.info(f"Dropped session {session_id}")

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
