from typing import Type, TypeVar, Dict
from sqlalchemy.orm import Session
from finboard.repositories.base import BaseRepository
from finboard.repositories.user_documents import UserDocumentRepository

T = TypeVar('T', bound=BaseRepository)


class RepositoryFactory:
    """
    Creates repository instances bound to one database session.
    Instances are cached per factory, so a request shares one repository per kind.
    """

    _repository_mapping: Dict[str, Type[BaseRepository]] = {
        'user_documents': UserDocumentRepository,
    }

    def __init__(self, db: Session):
        self.db = db
        self._instances: Dict[str, BaseRepository] = {}

    def get_repository(self, repository_name: str) -> BaseRepository:
        """
        Get a repository instance by name. Creates a singleton instance per factory.

        Raises:
            ValueError: If repository name is not recognized
        """
        if repository_name not in self._repository_mapping:
            available = ', '.join(self._repository_mapping.keys())
            raise ValueError(f"Unknown repository '{repository_name}'. Available: {available}")

        if repository_name not in self._instances:
            repository_class = self._repository_mapping[repository_name]
            self._instances[repository_name] = repository_class(self.db)

        return self._instances[repository_name]

    def get_user_document_repository(self) -> UserDocumentRepository:
        """Get UserDocumentRepository instance"""
        return self.get_repository('user_documents')
