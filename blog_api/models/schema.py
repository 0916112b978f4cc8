from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from blog_api.core.db import Base

TITLE_MAX_LENGTH = 255
AUTHOR_MAX_LENGTH = 100


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    content = Column(Text, nullable=False)
    author = Column(String(AUTHOR_MAX_LENGTH), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_posts_created_at", "created_at"),
        Index("idx_posts_author", "author"),
        # Matches the default ORDER BY created_at DESC, id DESC
        Index("idx_posts_created_at_id", created_at.desc(), id.desc()),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} author={self.author!r} created_at={self.created_at}>"
