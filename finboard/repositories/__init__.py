from finboard.repositories.base import BaseRepository, RepositoryError
from finboard.repositories.user_documents import UserDocumentRepository
from finboard.repositories.factory import RepositoryFactory

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "UserDocumentRepository",
    "RepositoryFactory",
]
