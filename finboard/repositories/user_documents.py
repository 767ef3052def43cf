import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finboard.models import UserDocument
from finboard.repositories.base import BaseRepository, RepositoryError
from finboard.schemas.user_data import UserData

logger = logging.getLogger(__name__)


class UserDocumentRepository(BaseRepository[UserDocument]):
    """
    One JSON snapshot per user.

    Saves replace the whole document, so concurrent writers resolve as
    last-write-wins.
    """

    def __init__(self, db: Session):
        super().__init__(db, UserDocument)

    def load(self, user_id: str) -> Optional[UserData]:
        row = self.get(user_id)
        if row is None:
            return None
        try:
            return UserData.model_validate(row.data or {})
        except ValidationError as e:
            logger.error(f"Stored document for user {user_id} is invalid: {e}")
            raise RepositoryError(f"Stored document for user {user_id} is invalid") from e

    def save(self, user_id: str, user_data: UserData) -> UserDocument:
        payload = user_data.model_dump(mode="json")
        if self.get(user_id) is None:
            return self.create({"user_id": user_id, "data": payload})
        return self.update(user_id, {"data": payload})

    def list_user_ids(self) -> List[str]:
        try:
            rows = (
                self.db.query(UserDocument.user_id)
                .order_by(UserDocument.user_id)
                .all()
            )
            return [row.user_id for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error listing user ids: {e}")
            raise RepositoryError("Failed to list user ids") from e
