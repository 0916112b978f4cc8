"""Database access for posts: the page query backend plus single-row CRUD."""

import re
from collections.abc import Generator, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import DateTime, Integer, String, Text, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.sql.selectable import TextualSelect

from blog_api.core.logging import get_logger
from blog_api.core.timing import timed
from blog_api.domain.converters import post_to_domain
from blog_api.domain.post import PostRecord
from blog_api.models.schema import Post, utcnow
from blog_api.pagination import PaginatedPosts, PostQuery, QueryPlan, fetch_page
from blog_api.pagination.errors import BackendError

logger = get_logger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$(\d+)")


def to_textual_select(sql: str, args: tuple[Any, ...]) -> TextualSelect:
    """Bind a ``$n``-style statement as a typed SQLAlchemy select.

    Placeholders become ``:p<n>`` bind parameters whose types are inferred
    from the values, so datetimes are stored and compared in the same
    format the ORM writes.
    """
    stmt: TextClause = text(_PLACEHOLDER_RE.sub(lambda m: f":p{m.group(1)}", sql))
    stmt = stmt.bindparams(*(bindparam(f"p{i}", value) for i, value in enumerate(args, start=1)))
    return stmt.columns(
        id=Integer,
        title=String,
        content=Text,
        author=String,
        created_at=DateTime,
        updated_at=DateTime,
    )


class PostRepository:
    """Posts table access bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    @property
    def dialect(self) -> str:
        return self.db.get_bind().dialect.name

    @contextmanager
    def _backend_errors(self, operation: str, **context: Any) -> Generator[None, None, None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Database error during {operation}: {e}",
                exc_info=True,
                extra={"operation": operation, "context_data": context or None},
            )
            raise BackendError(f"Database error during {operation}") from e

    def page_rows(self, plan: QueryPlan) -> Iterator[Mapping[str, Any]]:
        """Execute ``plan`` and stream its rows.

        The result is closed when iteration finishes, fails, or the
        consumer stops early.
        """
        sql, args = plan.to_sql()
        stmt = to_textual_select(sql, args)
        with self._backend_errors("fetch_page", limit=plan.limit):
            with timed("query posts page"):
                result = self.db.execute(stmt)
            try:
                yield from result.mappings()
            finally:
                result.close()

    def list_posts(self, query: PostQuery) -> PaginatedPosts:
        return fetch_page(query, self.page_rows, dialect=self.dialect)

    def get(self, post_id: int) -> PostRecord | None:
        with self._backend_errors("get_post", post_id=post_id):
            post = self.db.get(Post, post_id)
        return post_to_domain(post) if post is not None else None

    def create(self, *, title: str, content: str, author: str) -> PostRecord:
        with self._backend_errors("create_post"):
            post = Post(title=title, content=content, author=author)
            self.db.add(post)
            self.db.commit()
            self.db.refresh(post)
        logger.info(f"Created post {post.id}", extra={"operation": "create_post", "post_id": post.id})
        return post_to_domain(post)

    def update(
        self,
        post_id: int,
        *,
        title: str | None = None,
        content: str | None = None,
        author: str | None = None,
    ) -> PostRecord | None:
        """Apply the non-empty fields to a post; empty ones keep their stored value."""
        with self._backend_errors("update_post", post_id=post_id):
            post = self.db.get(Post, post_id)
            if post is None:
                return None
            if title:
                post.title = title
            if content:
                post.content = content
            if author:
                post.author = author
            post.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(post)
        return post_to_domain(post)

    def delete(self, post_id: int) -> bool:
        """Delete a post; returns whether a row was removed."""
        with self._backend_errors("delete_post", post_id=post_id):
            deleted = self.db.query(Post).filter(Post.id == post_id).delete()
            self.db.commit()
        if deleted:
            logger.info(f"Deleted post {post_id}", extra={"operation": "delete_post", "post_id": post_id})
        return bool(deleted)

    def ping(self) -> None:
        """Round-trip ``SELECT 1``; raises BackendError when the database is unreachable."""
        with self._backend_errors("ping"):
            self.db.execute(text("SELECT 1"))
