from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from finboard.core.config import settings
from finboard.core.db import get_db
from finboard.repositories.factory import RepositoryFactory
from finboard.services.user_data_service import UserDataService


def get_factory(db: Session = Depends(get_db)) -> RepositoryFactory:
    return RepositoryFactory(db)


def get_user_id(
        user_id: Optional[str] = Header(default=None, alias=settings.USER_ID_HEADER),
) -> str:
    """Caller identity as forwarded by the auth proxy; single-user setups fall back to the default."""
    user_id = (user_id or "").strip()
    return user_id or settings.DEFAULT_USER_ID


def get_user_data_service(factory: RepositoryFactory = Depends(get_factory)) -> UserDataService:
    return UserDataService(factory)
