"""FastAPI dependencies shared by the routers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from blog_api.core.db import get_db_session
from blog_api.repositories.post_repository import PostRepository


def get_post_repository(db: Annotated[Session, Depends(get_db_session)]) -> PostRepository:
    return PostRepository(db)


PostRepositoryDep = Annotated[PostRepository, Depends(get_post_repository)]
