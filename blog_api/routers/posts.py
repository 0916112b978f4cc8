"""Post listing and CRUD endpoints."""

from fastapi import APIRouter, HTTPException, Query, Response, status

from blog_api.models.posts import (
    ErrorResponse,
    PaginatedPostsResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from blog_api.pagination import PaginatedPosts, PostQuery
from blog_api.routers.deps import PostRepositoryDep

router = APIRouter(prefix="/posts", tags=["posts"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    503: {"model": ErrorResponse, "description": "Database unavailable"},
}


def _page_to_response(page: PaginatedPosts) -> PaginatedPostsResponse:
    return PaginatedPostsResponse(
        posts=[PostResponse.model_validate(p) for p in page.posts],
        next_cursor=page.next_cursor or None,
        prev_cursor=page.prev_cursor or None,
        has_more=page.has_more,
    )


@router.get(
    "",
    response_model=PaginatedPostsResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="List posts",
    description=(
        "Keyset-paginated listing. Pass the previous response's `next_cursor` as "
        "`cursor` to fetch the following page. An unreadable cursor is ignored and "
        "the first page is returned."
    ),
)
def list_posts(
    repo: PostRepositoryDep,
    cursor: str | None = Query(None, description="Opaque cursor from a previous next_cursor"),
    limit: int | None = Query(None, description="Page size, 1-100 (default 20)"),
    sort_by: str | None = Query(
        None, description="created_at (default), updated_at, title or id"
    ),
    sort_dir: str | None = Query(None, description="asc or desc (default)"),
    author: str | None = Query(None, description="Exact author match"),
    search: str | None = Query(
        None, description="Case-insensitive substring of title or content"
    ),
) -> PaginatedPostsResponse:
    """Runs in the threadpool. A client disconnect does not interrupt the
    running statement; on PostgreSQL the connection's statement_timeout
    bounds it.
    """
    query = PostQuery(
        cursor=cursor or "",
        limit=limit,
        sort_by=sort_by,
        sort_dir=sort_dir,
        author=author or "",
        search=search or "",
    )
    return _page_to_response(repo.list_posts(query))


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Create a post",
)
def create_post(body: PostCreate, repo: PostRepositoryDep) -> PostResponse:
    post = repo.create(title=body.title, content=body.content, author=body.author)
    return PostResponse.model_validate(post)


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found"}, **_ERROR_RESPONSES},
    summary="Get a post",
)
def get_post(post_id: int, repo: PostRepositoryDep) -> PostResponse:
    post = repo.get(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostResponse.model_validate(post)


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found"}, **_ERROR_RESPONSES},
    summary="Update a post",
)
def update_post(post_id: int, body: PostUpdate, repo: PostRepositoryDep) -> PostResponse:
    post = repo.update(post_id, title=body.title, content=body.content, author=body.author)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostResponse.model_validate(post)


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERROR_RESPONSES,
    summary="Delete a post",
)
def delete_post(post_id: int, repo: PostRepositoryDep) -> Response:
    # Deleting a missing post is not an error
    repo.delete(post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
