"""Request-side query model for listing posts."""

from dataclasses import dataclass, replace
from enum import Enum

from blog_api.models.schema import AUTHOR_MAX_LENGTH
from blog_api.pagination.errors import QueryValidationError

DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100
SEARCH_MAX_LENGTH = 255


class SortField(str, Enum):
    """Columns a page can be ordered by. ``id`` always breaks ties."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"
    ID = "id"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_FIELD = SortField.CREATED_AT
DEFAULT_SORT_DIRECTION = SortDirection.DESC


@dataclass(frozen=True)
class PostQuery:
    """Parameters of one page request.

    ``None``/empty values mean "use the default". The cursor is kept as the
    raw client string; it is only decoded when the page query is built.
    """

    cursor: str = ""
    limit: int | None = None
    sort_by: SortField | str | None = None
    sort_dir: SortDirection | str | None = None
    author: str = ""
    search: str = ""


def _parse_enum(enum_cls, value, *, field: str, default):
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise QueryValidationError(field, f"must be one of: {allowed}") from None


def normalize_and_validate(query: PostQuery) -> PostQuery:
    """Apply defaults and reject out-of-range values.

    Stops at the first invalid field. The cursor is not decoded here.

    Raises:
        QueryValidationError: naming the offending field.
    """
    limit = DEFAULT_LIMIT if query.limit is None else query.limit
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise QueryValidationError("limit", "must be an integer")
    if not MIN_LIMIT <= limit <= MAX_LIMIT:
        raise QueryValidationError("limit", f"must be between {MIN_LIMIT} and {MAX_LIMIT}")

    sort_by = _parse_enum(SortField, query.sort_by, field="sort_by", default=DEFAULT_SORT_FIELD)
    sort_dir = _parse_enum(
        SortDirection, query.sort_dir, field="sort_dir", default=DEFAULT_SORT_DIRECTION
    )

    author = query.author or ""
    if len(author) > AUTHOR_MAX_LENGTH:
        raise QueryValidationError("author", f"must be at most {AUTHOR_MAX_LENGTH} characters")

    # Matched as given; only the empty string means no filter
    search = query.search or ""
    if len(search) > SEARCH_MAX_LENGTH:
        raise QueryValidationError("search", f"must be at most {SEARCH_MAX_LENGTH} characters")

    return replace(
        query,
        cursor=(query.cursor or "").strip(),
        limit=limit,
        sort_by=sort_by,
        sort_dir=sort_dir,
        author=author,
        search=search,
    )
