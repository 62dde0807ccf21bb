"""
Pydantic schemas for reader-editable profile settings.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ProfileSettings(BaseModel):
    """Reader-editable preferences; everything else is derived from sprints."""

    preferred_session_minutes: Optional[int] = Field(default=None, ge=1)
    peak_performance_hour: Optional[int] = Field(default=None, ge=0, le=23)
