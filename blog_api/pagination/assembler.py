"""Page assembly: overfetch by one row, trim, and mint cursors."""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from blog_api.core.logging import get_logger
from blog_api.domain.converters import post_from_row
from blog_api.domain.post import PostRecord
from blog_api.pagination.builder import QueryPlan, build_query_plan, cursor_for_post
from blog_api.pagination.errors import RowDecodeError
from blog_api.pagination.query import PostQuery, SortField, normalize_and_validate

logger = get_logger(__name__)

# Executes a plan and yields one mapping per row, in plan order.
RowSource = Callable[[QueryPlan], Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class PaginatedPosts:
    posts: list[PostRecord] = field(default_factory=list)
    next_cursor: str = ""
    prev_cursor: str = ""
    has_more: bool = False


def assemble_page(
    rows: Iterable[Mapping[str, Any]], *, limit: int, sort_by: SortField, had_cursor: bool
) -> PaginatedPosts:
    """Shape up to ``limit + 1`` rows into a page.

    A row beyond ``limit`` only proves that another page exists; it is
    dropped and the next cursor points at the last row that is kept.
    ``prev_cursor`` is the first row's position when the request carried a
    usable cursor. It is a hint, not a cursor for paging backwards.

    Raises:
        RowDecodeError: if any row cannot be decoded; no partial page is returned.
    """
    buffer: list[PostRecord] = []
    try:
        for row in rows:
            buffer.append(post_from_row(row))
    except (KeyError, TypeError, ValueError) as e:
        raise RowDecodeError(f"Failed to decode post row: {e}") from e

    has_more = len(buffer) > limit
    if has_more:
        buffer = buffer[:limit]

    next_cursor = ""
    if has_more and buffer:
        next_cursor = cursor_for_post(buffer[-1], sort_by).encode()

    prev_cursor = ""
    if had_cursor and buffer:
        prev_cursor = cursor_for_post(buffer[0], sort_by).encode()

    return PaginatedPosts(
        posts=buffer,
        next_cursor=next_cursor,
        prev_cursor=prev_cursor,
        has_more=has_more,
    )


def fetch_page(query: PostQuery, source: RowSource, *, dialect: str = "postgresql") -> PaginatedPosts:
    """Validate ``query``, run it against ``source`` and assemble the page.

    Raises:
        QueryValidationError: before anything is sent to the backend.
        BackendError: if ``source`` fails to execute the plan.
        RowDecodeError: if a row cannot be decoded.
    """
    query = normalize_and_validate(query)
    plan = build_query_plan(query, dialect=dialect)
    sort_by = SortField(query.sort_by)

    page = assemble_page(
        source(plan),
        limit=query.limit,
        sort_by=sort_by,
        had_cursor=plan.cursor is not None,
    )
    logger.debug(
        f"Fetched page of {len(page.posts)} posts (has_more={page.has_more})",
        extra={
            "operation": "fetch_page",
            "context_data": {
                "sort_by": sort_by.value,
                "sort_dir": query.sort_dir.value,
                "limit": query.limit,
                "filtered": bool(query.author or query.search),
            },
        },
    )
    return page
