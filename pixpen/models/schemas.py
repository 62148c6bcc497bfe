from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from pixpen.models.domain import SegmentObject
from pixpen.services.image_io import to_data_url
from pixpen.services.session import EditSession


class NormalizedBox(BaseModel):
    """[ymin, xmin, ymax, xmax] on the 0-1000 grid"""
    ymin: float
    xmin: float
    ymax: float
    xmax: float


class SegmentObjectOut(BaseModel):
    id: str
    ordinal: int
    display_number: int
    box: NormalizedBox
    label: str | None = None
    mask_base64: str  # data URL of the aligned PNG mask

    @classmethod
    def from_domain(cls, obj: SegmentObject) -> "SegmentObjectOut":
        ymin, xmin, ymax, xmax = obj.box
        return cls(
            id=obj.id,
            ordinal=obj.ordinal,
            display_number=obj.display_number,
            box=NormalizedBox(ymin=ymin, xmin=xmin, ymax=ymax, xmax=xmax),
            label=obj.label,
            mask_base64=to_data_url(obj.mask_file, "image/png"),
        )


class SessionResponse(BaseModel):
    session_id: str
    status: str
    image_width: int
    image_height: int
    objects: list[SegmentObjectOut] = Field(default_factory=list)
    selected_ids: list[str] = Field(default_factory=list)
    hovered_id: str | None = None
    active: bool
    segmentation_error: str | None = None

    @classmethod
    def from_session(cls, session: EditSession, include_masks: bool = True) -> "SessionResponse":
        width, height = session.image_size
        return cls(
            session_id=session.id,
            status=session.status.value,
            image_width=width,
            image_height=height,
            objects=[SegmentObjectOut.from_domain(o) for o in session.objects] if include_masks else [],
            selected_ids=list(session.state.selected_ids),
            hovered_id=session.state.hovered_id,
            active=session.is_active,
            segmentation_error=session.segmentation_error,
        )


class PointerEvent(BaseModel):
    """
    Pointer position either in natural image pixels, or in display pixels
    when display_width/display_height are given.
    """
    action: Literal["hover", "click", "leave"]
    x: float = 0.0
    y: float = 0.0
    display_width: float | None = Field(default=None, gt=0)
    display_height: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _display_size_pair(self) -> "PointerEvent":
        if (self.display_width is None) != (self.display_height is None):
            raise ValueError("display_width and display_height must be provided together")
        return self

    @property
    def display_size(self) -> tuple[float, float] | None:
        if self.display_width is None or self.display_height is None:
            return None
        return self.display_width, self.display_height


class PointerResponse(BaseModel):
    hit_id: str | None
    hovered_id: str | None
    selected_ids: list[str]
    active: bool


class SelectionResponse(BaseModel):
    selected_ids: list[str]


class EditMaskRequest(BaseModel):
    whole_image: bool = False


class EditRequest(BaseModel):
    prompt: str = Field(min_length=1)
    whole_image: bool = False


class FilterRequest(BaseModel):
    prompt: str = Field(min_length=1)


class EditResponse(BaseModel):
    session_id: str
    image: str  # data URL of the new current image
    image_width: int
    image_height: int
