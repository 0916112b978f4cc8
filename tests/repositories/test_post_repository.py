"""Tests for the posts repository against an in-memory SQLite database."""

import base64
import random
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blog_api.pagination import (
    BackendError,
    PostQuery,
    QueryValidationError,
    SortDirection,
    SortField,
    build_query_plan,
    decode_cursor,
)
from blog_api.pagination.cursor import Cursor
from blog_api.repositories.post_repository import PostRepository, to_textual_select
from conftest import BASE_TIME, at


def collect_pages(repo: PostRepository, **params):
    """Follow next_cursor until has_more is false."""
    pages = []
    cursor = ""
    for _ in range(500):
        page = repo.list_posts(PostQuery(cursor=cursor, **params))
        pages.append(page)
        if not page.has_more:
            break
        cursor = page.next_cursor
    else:
        pytest.fail("pagination did not terminate")
    return pages


def ids_of(pages) -> list[int]:
    return [post.id for page in pages for post in page.posts]


class TestScenarios:
    def test_descending_created_at_pages(self, repo, make_post):
        for i in range(1, 6):
            make_post(id=i, created_at=at(i - 1))

        page1 = repo.list_posts(PostQuery(limit=2, sort_by="created_at", sort_dir="desc"))
        assert [p.id for p in page1.posts] == [5, 4]
        assert page1.has_more is True
        assert decode_cursor(page1.next_cursor) == Cursor(id=4, created_at=at(3))
        assert page1.prev_cursor == ""

        page2 = repo.list_posts(PostQuery(limit=2, cursor=page1.next_cursor))
        assert [p.id for p in page2.posts] == [3, 2]
        assert page2.has_more is True
        assert decode_cursor(page2.prev_cursor) == Cursor(id=3, created_at=at(2))

        page3 = repo.list_posts(PostQuery(limit=2, cursor=page2.next_cursor))
        assert [p.id for p in page3.posts] == [1]
        assert page3.has_more is False
        assert page3.next_cursor == ""

    def test_timestamp_ties_are_neither_skipped_nor_repeated(self, repo, make_post):
        make_post(id=10, created_at=BASE_TIME)
        make_post(id=11, created_at=BASE_TIME)
        make_post(id=12, created_at=at(1))

        pages = collect_pages(repo, limit=1, sort_dir="desc")
        assert [[p.id for p in page.posts] for page in pages] == [[12], [11], [10]]

    def test_limit_above_maximum_is_rejected(self, repo):
        with pytest.raises(QueryValidationError, match="between 1 and 100"):
            repo.list_posts(PostQuery(limit=101))

    def test_author_filter(self, repo, make_post):
        authors = ["alice", "bob", "alice", "carol", "bob", "alice", "dave"]
        for i, author in enumerate(authors, start=1):
            make_post(id=i, author=author, created_at=at(i))

        page = repo.list_posts(PostQuery(author="alice", limit=10))
        assert sorted(p.id for p in page.posts) == [1, 3, 6]
        assert all(p.author == "alice" for p in page.posts)
        assert page.has_more is False

    def test_author_filter_is_exact(self, repo, make_post):
        make_post(id=1, author="alice")
        make_post(id=2, author="Alice")
        make_post(id=3, author="alicex")
        page = repo.list_posts(PostQuery(author="alice"))
        assert [p.id for p in page.posts] == [1]

    def test_search_is_case_insensitive_over_title_and_content(self, repo, make_post):
        make_post(id=1, title="Learning golang", created_at=at(1))
        make_post(id=2, content="Why GOLANG channels work", created_at=at(2))
        make_post(id=3, title="Python", content="nothing to see", created_at=at(3))
        make_post(id=4, title="GoLang and Rust", content="also golang", created_at=at(4))

        page = repo.list_posts(PostQuery(search="GoLaNg"))
        assert [p.id for p in page.posts] == [4, 2, 1]

    def test_search_wildcards_match_literally(self, repo, make_post):
        make_post(id=1, title="50% off")
        make_post(id=2, title="500 off")
        make_post(id=3, title="a_b")
        make_post(id=4, title="axb")

        assert [p.id for p in repo.list_posts(PostQuery(search="50%")).posts] == [1]
        assert [p.id for p in repo.list_posts(PostQuery(search="a_b")).posts] == [3]

    def test_search_term_is_not_trimmed(self, repo, make_post):
        make_post(id=1, title="lets go now")
        make_post(id=2, title="golang")

        assert [p.id for p in repo.list_posts(PostQuery(search=" go")).posts] == [1]
        assert repo.list_posts(PostQuery(search="  ")).posts == []

    def test_malformed_cursor_returns_first_page(self, repo, make_post):
        for i in range(1, 6):
            make_post(id=i, created_at=at(i))

        baseline = repo.list_posts(PostQuery(limit=2))
        tolerant = repo.list_posts(PostQuery(limit=2, cursor="!!!not-base64!!!"))
        assert tolerant == baseline
        assert tolerant.prev_cursor == ""

    def test_out_of_range_cursor_id_returns_first_page(self, repo, make_post):
        for i in range(1, 6):
            make_post(id=i, created_at=at(i))

        huge = base64.urlsafe_b64encode(b"99999999999999999999|0").decode().rstrip("=")
        baseline = repo.list_posts(PostQuery(limit=2))
        tolerant = repo.list_posts(PostQuery(limit=2, cursor=huge))
        assert tolerant == baseline
        assert tolerant.prev_cursor == ""


def _seed_random_posts(make_post, seed: int, count: int = 37):
    rng = random.Random(seed)
    titles = ["alpha", "beta", "Gamma", "delta golang", "epsilon"]
    posts = []
    for i in range(1, count + 1):
        created = at(rng.randint(0, 10))
        posts.append(
            make_post(
                id=i,
                title=rng.choice(titles),
                content=rng.choice(["plain text", "about GoLang", "misc"]),
                author=rng.choice(["alice", "bob", "carol"]),
                created_at=created,
                updated_at=created + timedelta(seconds=rng.randint(0, 5)),
            )
        )
    return posts


def _expected_ids(posts, *, sort_by: str, sort_dir: str, author: str = "", search: str = ""):
    matching = [
        p
        for p in posts
        if (not author or p.author == author)
        and (not search or search.lower() in p.title.lower() or search.lower() in p.content.lower())
    ]
    if sort_by == "id":
        key = lambda p: p.id  # noqa: E731
    else:
        key = lambda p: (getattr(p, sort_by), p.id)  # noqa: E731
    return [p.id for p in sorted(matching, key=key, reverse=sort_dir == "desc")]


class TestPaginationInvariants:
    @pytest.mark.parametrize("sort_by", [f.value for f in SortField])
    @pytest.mark.parametrize("sort_dir", [d.value for d in SortDirection])
    @pytest.mark.parametrize("limit", [1, 4, 7, 100])
    def test_pages_cover_every_row_once_in_order(self, repo, make_post, sort_by, sort_dir, limit):
        posts = _seed_random_posts(make_post, seed=limit)

        pages = collect_pages(repo, limit=limit, sort_by=sort_by, sort_dir=sort_dir)
        seen = ids_of(pages)

        assert len(seen) == len(set(seen))
        assert seen == _expected_ids(posts, sort_by=sort_by, sort_dir=sort_dir)
        for page in pages[:-1]:
            assert page.has_more is True
            assert len(page.posts) == limit
            assert page.next_cursor
        assert pages[-1].has_more is False
        assert len(pages[-1].posts) <= limit

    @pytest.mark.parametrize("sort_by", ["created_at", "title"])
    @pytest.mark.parametrize("author,search", [("alice", ""), ("", "golang"), ("bob", "GOLANG")])
    def test_filtered_pages(self, repo, make_post, sort_by, author, search):
        posts = _seed_random_posts(make_post, seed=7)

        pages = collect_pages(repo, limit=3, sort_by=sort_by, author=author, search=search)
        seen = ids_of(pages)

        assert seen == _expected_ids(
            posts, sort_by=sort_by, sort_dir="desc", author=author, search=search
        )
        by_id = {p.id: p for p in posts}
        for post_id in seen:
            post = by_id[post_id]
            if author:
                assert post.author == author
            if search:
                assert search.lower() in (post.title + " " + post.content).lower()

    def test_rows_inserted_ahead_of_the_cursor_do_not_appear(self, repo, make_post):
        for i in range(1, 7):
            make_post(id=i, created_at=at(i))

        page1 = repo.list_posts(PostQuery(limit=2))
        make_post(id=100, created_at=at(60))
        rest = collect_pages(repo, limit=2)
        assert 100 in ids_of(rest)

        following = repo.list_posts(PostQuery(limit=10, cursor=page1.next_cursor))
        assert [p.id for p in following.posts] == [4, 3, 2, 1]

    def test_deleting_the_cursor_row_does_not_break_paging(self, repo, make_post):
        for i in range(1, 7):
            make_post(id=i, created_at=at(i))

        page1 = repo.list_posts(PostQuery(limit=2))
        assert repo.delete(5) is True

        page2 = repo.list_posts(PostQuery(limit=2, cursor=page1.next_cursor))
        assert [p.id for p in page2.posts] == [4, 3]

    def test_title_sort_with_deleted_cursor_row_is_empty(self, repo, make_post):
        for i, title in enumerate(["a", "b", "c", "d"], start=1):
            make_post(id=i, title=title)

        page1 = repo.list_posts(PostQuery(limit=2, sort_by="title", sort_dir="asc"))
        assert [p.title for p in page1.posts] == ["a", "b"]
        repo.delete(2)

        # The anchor title is gone, so nothing compares after it
        page2 = repo.list_posts(
            PostQuery(limit=2, sort_by="title", sort_dir="asc", cursor=page1.next_cursor)
        )
        assert page2.posts == []
        assert page2.has_more is False


class TestPageQueryExecution:
    def test_to_textual_select_binds_named_parameters(self):
        plan = build_query_plan(PostQuery(author="alice"), dialect="sqlite")
        stmt = to_textual_select(*plan.to_sql())
        compiled = stmt.compile()
        assert ":p1" in str(compiled)
        assert compiled.params == {"p1": "alice", "p2": 21}

    def test_stream_can_be_abandoned(self, repo, make_post):
        for i in range(1, 4):
            make_post(id=i, created_at=at(i))

        rows = repo.page_rows(build_query_plan(PostQuery(), dialect="sqlite"))
        assert next(rows)["id"] == 3
        rows.close()
        # The session is still usable afterwards
        assert repo.get(1) is not None

    def test_missing_table_is_backend_error(self):
        engine = create_engine(
            "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        session = sessionmaker(bind=engine)()
        try:
            with pytest.raises(BackendError) as exc_info:
                PostRepository(session).list_posts(PostQuery())
            assert isinstance(exc_info.value.__cause__, SQLAlchemyError)
            assert "SELECT" not in str(exc_info.value)
        finally:
            session.close()
            engine.dispose()


class TestCrud:
    def test_create_assigns_id_and_timestamps(self, repo):
        post = repo.create(title="Hello", content="World", author="alice")
        assert post.id is not None
        assert post.created_at is not None
        assert post.updated_at is not None
        assert repo.get(post.id) == post

    def test_get_missing_returns_none(self, repo):
        assert repo.get(9999) is None

    def test_update_keeps_empty_fields(self, repo, make_post):
        original = make_post(id=1, title="Old", content="Body", author="alice")
        updated = repo.update(1, title="New", content="", author=None)
        assert updated.title == "New"
        assert updated.content == "Body"
        assert updated.author == "alice"
        assert updated.created_at == BASE_TIME
        assert updated.updated_at > original.created_at

    def test_update_missing_returns_none(self, repo):
        assert repo.update(42, title="x") is None

    def test_delete(self, repo, make_post):
        make_post(id=1)
        assert repo.delete(1) is True
        assert repo.delete(1) is False
        assert repo.get(1) is None

    def test_ping(self, repo):
        repo.ping()
