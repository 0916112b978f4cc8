"""Keyset (cursor) pagination over posts.

- cursor: opaque position codec
- query: request model, defaults and validation
- builder: WHERE/ORDER BY/LIMIT with positional placeholders
- assembler: overfetch-and-trim page shaping
"""

from blog_api.pagination.assembler import PaginatedPosts, RowSource, assemble_page, fetch_page
from blog_api.pagination.builder import QueryPlan, build_query_plan
from blog_api.pagination.cursor import Cursor, decode_cursor, encode_cursor
from blog_api.pagination.errors import (
    BackendError,
    InvalidCursorError,
    PaginationError,
    QueryValidationError,
    RowDecodeError,
)
from blog_api.pagination.query import PostQuery, SortDirection, SortField, normalize_and_validate

__all__ = [
    "BackendError",
    "Cursor",
    "InvalidCursorError",
    "PaginatedPosts",
    "PaginationError",
    "PostQuery",
    "QueryPlan",
    "QueryValidationError",
    "RowDecodeError",
    "RowSource",
    "SortDirection",
    "SortField",
    "assemble_page",
    "build_query_plan",
    "decode_cursor",
    "encode_cursor",
    "fetch_page",
    "normalize_and_validate",
]
