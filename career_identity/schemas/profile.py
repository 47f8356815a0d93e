from __future__ import annotations

from pydantic import BaseModel

from .talking_points import TalkingPoints


class ProfileRequest(BaseModel):
    regenerate: bool = False


class TailoredProfile(BaseModel):
    id: str
    talking_points: TalkingPoints
    narrative: str = ""
    created_at: str = ""


class ProfileResponse(BaseModel):
    profile: TailoredProfile
    cached: bool
