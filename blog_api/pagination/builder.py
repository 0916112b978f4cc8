"""Translate a validated ``PostQuery`` into a keyset page query.

The output is plain SQL fragments with positional ``$n`` placeholders and
the matching argument vector, so callers never interpolate user input.

The cursor predicate is always a tuple comparison on ``(sort_column, id)``
in the same direction as the ORDER BY. ``created_at`` and ``updated_at``
are not unique, so a scalar comparison would skip or repeat rows sharing
the cursor's timestamp.
"""

from dataclasses import dataclass
from typing import Any

from blog_api.core.logging import get_logger
from blog_api.pagination.cursor import Cursor, decode_cursor
from blog_api.pagination.errors import InvalidCursorError
from blog_api.pagination.query import PostQuery, SortDirection, SortField, normalize_and_validate

logger = get_logger(__name__)

POSTS_TABLE = "posts"
POST_COLUMNS = ("id", "title", "content", "author", "created_at", "updated_at")
LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class QueryPlan:
    """Backend-agnostic description of one page fetch."""

    where: str
    order_by: str
    limit: int
    args: tuple[Any, ...]
    cursor: Cursor | None = None

    def to_sql(self, table: str = POSTS_TABLE) -> tuple[str, tuple[Any, ...]]:
        """Full SELECT statement and its arguments; LIMIT is the last placeholder."""
        parts = [f"SELECT {', '.join(POST_COLUMNS)} FROM {table}"]
        if self.where:
            parts.append(f"WHERE {self.where}")
        parts.append(f"ORDER BY {self.order_by}")
        parts.append(f"LIMIT ${len(self.args) + 1}")
        return " ".join(parts), (*self.args, self.limit)


class _Args:
    """Collects bound values and hands out their ``$n`` placeholders."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def decode_cursor_or_none(raw: str) -> Cursor | None:
    """Decode ``raw``, treating a malformed cursor as no cursor at all."""
    if not raw:
        return None
    try:
        return decode_cursor(raw)
    except InvalidCursorError as e:
        logger.info(
            f"Ignoring invalid cursor, serving first page: {e}",
            extra={"operation": "decode_cursor"},
        )
        return None


def cursor_for_post(post: Any, sort_by: SortField) -> Cursor:
    """Cursor positioned at ``post`` for the given sort.

    The timestamp slot carries the sort column when it is a timestamp; for
    ``title`` and ``id`` the id alone anchors the position.
    """
    if sort_by == SortField.UPDATED_AT:
        return Cursor(id=post.id, created_at=post.updated_at)
    return Cursor(id=post.id, created_at=post.created_at)


def _cursor_predicate(cursor: Cursor, sort_by: SortField, op: str, args: _Args) -> str:
    if sort_by == SortField.ID:
        return f"id {op} {args.add(cursor.id)}"
    if sort_by == SortField.TITLE:
        anchor = f"(SELECT anchor.title FROM {POSTS_TABLE} anchor WHERE anchor.id = {args.add(cursor.id)})"
        return f"(title, id) {op} ({anchor}, {args.add(cursor.id)})"
    column = sort_by.value
    return f"({column}, id) {op} ({args.add(cursor.created_at)}, {args.add(cursor.id)})"


def _search_predicate(term: str, dialect: str, args: _Args) -> str:
    pattern = f"%{escape_like(term)}%"
    escape = f"ESCAPE '{LIKE_ESCAPE}'"
    if dialect == "postgresql":
        return (
            f"(title ILIKE {args.add(pattern)} {escape} "
            f"OR content ILIKE {args.add(pattern)} {escape})"
        )
    pattern = pattern.lower()
    return (
        f"(lower(title) LIKE {args.add(pattern)} {escape} "
        f"OR lower(content) LIKE {args.add(pattern)} {escape})"
    )


def build_order_by(sort_by: SortField, sort_dir: SortDirection) -> str:
    direction = sort_dir.value.upper()
    if sort_by == SortField.ID:
        return f"id {direction}"
    return f"{sort_by.value} {direction}, id {direction}"


def build_query_plan(query: PostQuery, *, dialect: str = "postgresql") -> QueryPlan:
    """Build the WHERE/ORDER BY/LIMIT for one page.

    Args:
        query: Page request; defaults are applied and it is validated first.
        dialect: SQLAlchemy dialect name; selects ILIKE or lower()+LIKE.

    Returns:
        QueryPlan whose ``limit`` is one more than the page size.

    Raises:
        QueryValidationError: if ``query`` is invalid.
    """
    query = normalize_and_validate(query)
    sort_by = SortField(query.sort_by)
    sort_dir = SortDirection(query.sort_dir)

    args = _Args()
    conditions: list[str] = []

    cursor = decode_cursor_or_none(query.cursor)
    if cursor is not None:
        op = "<" if sort_dir == SortDirection.DESC else ">"
        conditions.append(_cursor_predicate(cursor, sort_by, op, args))

    if query.author:
        conditions.append(f"author = {args.add(query.author)}")

    if query.search:
        conditions.append(_search_predicate(query.search, dialect, args))

    return QueryPlan(
        where=" AND ".join(conditions),
        order_by=build_order_by(sort_by, sort_dir),
        limit=query.limit + 1,
        args=tuple(args.values),
        cursor=cursor,
    )
