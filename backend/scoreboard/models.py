"""Pydantic models for the racing scoreboard."""
from typing import Any, List, Optional
from enum import Enum
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator

COURSES = ("c1", "c2", "c3", "c4", "c5")
DEFAULT_COURSE = "c1"
NAME_MAX_LENGTH = 40


class Device(str, Enum):
    MOBILE = "mobile"
    DESKTOP = "desktop"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def coerce_time(value: Any) -> Optional[float]:
    """Return a finite course time, or None when the value is not usable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        # OverflowError: integers too large for a float
        return None
    if not math.isfinite(number):
        return None
    return number


class CourseTimes(BaseModel):
    """Five independent course best times, each present only when set."""
    c1: Optional[float] = None
    c2: Optional[float] = None
    c3: Optional[float] = None
    c4: Optional[float] = None
    c5: Optional[float] = None

    @field_validator(*COURSES, mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> Optional[float]:
        return coerce_time(value)

    def time_for(self, course: str) -> Optional[float]:
        return getattr(self, course)


class ScoreSubmission(CourseTimes):
    """Body of POST /scores/submit."""
    name: Optional[str] = None
    device: Optional[str] = None

    @field_validator("name", "device", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)


class ScoreRecord(CourseTimes):
    """One player's best times, stored at /scores/<key>."""
    model_config = ConfigDict(populate_by_name=True)

    key: str
    name: str
    device: Device = Device.DESKTOP
    updated_at: int = Field(alias="updatedAt")

    @field_validator("device", mode="before")
    @classmethod
    def _coerce_device(cls, value: Any) -> Device:
        return Device.MOBILE if value == Device.MOBILE.value else Device.DESKTOP

    def to_stored(self) -> dict:
        """Wire/storage form: camelCase keys, unset course times omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScoreListResponse(BaseModel):
    scores: List[dict]


class SubmitResponse(BaseModel):
    ok: bool = True
    saved: dict


class HealthResponse(BaseModel):
    ok: bool = True
    time: int
