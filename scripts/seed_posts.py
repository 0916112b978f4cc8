#!/usr/bin/env python3
"""
Seed sample posts and walk through them page by page.

Examples:
    python scripts/seed_posts.py --count 50
    python scripts/seed_posts.py --page-size 10 --sort-by title --sort-dir asc
    python scripts/seed_posts.py --author alice --search keyset
"""

import argparse
import random
import sys
from datetime import timedelta
from pathlib import Path

# Add the parent directory to the path so we can import from blog_api
sys.path.append(str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table

from blog_api.core.db import create_tables, get_db
from blog_api.models.schema import Post, utcnow
from blog_api.pagination import PaginationError, PostQuery
from blog_api.repositories.post_repository import PostRepository

AUTHORS = ["alice", "bob", "carol", "dave"]
TOPICS = ["Keyset pagination", "Golang tips", "SQL indexes", "FastAPI", "Cursor encoding"]


def truncate_text(text: str, max_length: int = 50) -> str:
    """Truncate text to max_length with ellipsis."""
    if not text:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


def seed(console: Console, count: int) -> None:
    """Insert ``count`` posts with distinct, spread-out timestamps."""
    base = utcnow() - timedelta(minutes=count)
    with get_db() as db:
        for i in range(count):
            topic = random.choice(TOPICS)
            created_at = base + timedelta(minutes=i)
            db.add(
                Post(
                    title=f"{topic} #{i}",
                    content=f"Notes on {topic.lower()} (sample {i}).",
                    author=random.choice(AUTHORS),
                    created_at=created_at,
                    updated_at=created_at,
                )
            )
    console.print(f"[green]Inserted {count} posts.[/green]")


def walk_pages(console: Console, query: PostQuery, max_pages: int) -> None:
    """Fetch pages until has_more is false, printing one table per page."""
    seen = 0
    page_number = 0
    with get_db() as db:
        repo = PostRepository(db)
        for page_number in range(1, max_pages + 1):
            page = repo.list_posts(query)

            table = Table(title=f"Page {page_number}")
            table.add_column("ID", style="cyan", justify="right")
            table.add_column("Title")
            table.add_column("Author", style="magenta")
            table.add_column("Created", style="green")
            table.add_column("Updated", style="yellow")
            for post in page.posts:
                table.add_row(
                    str(post.id),
                    truncate_text(post.title, 40),
                    post.author,
                    post.created_at.isoformat(sep=" ", timespec="seconds"),
                    post.updated_at.isoformat(sep=" ", timespec="seconds"),
                )
            console.print(table)
            seen += len(page.posts)

            if not page.has_more:
                break
            console.print(f"[dim]next_cursor={page.next_cursor}[/dim]")
            query = PostQuery(
                cursor=page.next_cursor,
                limit=query.limit,
                sort_by=query.sort_by,
                sort_dir=query.sort_dir,
                author=query.author,
                search=query.search,
            )

    console.print(f"[bold]{seen} posts across {page_number} page(s).[/bold]")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--count", type=int, default=0, help="Number of posts to insert first")
    parser.add_argument("--page-size", type=int, default=20)
    parser.add_argument("--sort-by", default="created_at")
    parser.add_argument("--sort-dir", default="desc")
    parser.add_argument("--author", default="")
    parser.add_argument("--search", default="")
    parser.add_argument("--max-pages", type=int, default=100)
    args = parser.parse_args()

    console = Console()
    create_tables()

    if args.count:
        seed(console, args.count)

    query = PostQuery(
        limit=args.page_size,
        sort_by=args.sort_by,
        sort_dir=args.sort_dir,
        author=args.author,
        search=args.search,
    )
    try:
        walk_pages(console, query, args.max_pages)
    except PaginationError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
