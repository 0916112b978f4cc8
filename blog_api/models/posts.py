"""Pydantic models for the posts API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

from blog_api.models.schema import AUTHOR_MAX_LENGTH, TITLE_MAX_LENGTH


def _format_timestamp(value: datetime) -> str:
    # Stored timestamps are naive UTC
    return value.isoformat(timespec="microseconds") + "Z"


class PostCreate(BaseModel):
    """Body of POST /posts."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1, max_length=AUTHOR_MAX_LENGTH)

    @field_validator("title", "content", "author")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class PostUpdate(BaseModel):
    """Body of PUT /posts/{id}. Missing or empty fields keep their current value."""

    title: str | None = Field(None, max_length=TITLE_MAX_LENGTH)
    content: str | None = None
    author: str | None = Field(None, max_length=AUTHOR_MAX_LENGTH)


class PostResponse(BaseModel):
    """A single post."""

    id: int = Field(..., description="Post identifier")
    title: str = Field(..., description="Post title")
    content: str = Field(..., description="Post body")
    author: str = Field(..., description="Author name")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC)")

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": 42,
                "title": "Keyset pagination in practice",
                "content": "Offsets get slower the deeper you page...",
                "author": "alice",
                "created_at": "2025-06-19T10:30:00.000000Z",
                "updated_at": "2025-06-19T10:30:00.000000Z",
            }
        },
    }

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return _format_timestamp(value)


class PaginatedPostsResponse(BaseModel):
    """One page of posts."""

    posts: list[PostResponse] = Field(default_factory=list)
    next_cursor: str | None = Field(
        None, description="Cursor for the next page (null when there are no more results)"
    )
    prev_cursor: str | None = Field(
        None,
        description=(
            "Position of the first post on this page when a cursor was supplied. "
            "Informational only; it does not page backwards."
        ),
    )
    has_more: bool = Field(False, description="Whether another page exists")


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: str | None = None
    details: dict | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
