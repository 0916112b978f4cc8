"""Converters between database rows, ORM models and domain records."""

from collections.abc import Mapping
from typing import Any

from blog_api.domain.post import PostRecord
from blog_api.models.schema import Post as DBPost


def post_from_row(row: Mapping[str, Any]) -> PostRecord:
    """Build a record from a result row mapping.

    Raises:
        KeyError: if a column is missing.
        pydantic.ValidationError: if a column has the wrong type.
    """
    return PostRecord(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        author=row["author"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def post_to_domain(post: DBPost) -> PostRecord:
    return PostRecord.model_validate(post)
