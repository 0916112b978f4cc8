from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PostRecord(BaseModel):
    """A post as the pagination core sees it: immutable and detached from the session."""

    model_config = ConfigDict(frozen=True, from_attributes=True, strict=True)

    id: int
    title: str
    content: str
    author: str
    created_at: datetime
    updated_at: datetime
