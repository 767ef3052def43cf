from typing import Optional

from finboard.core.config import settings
from finboard.core.ids import IdGenerator, id_generator
from finboard.core.logger import logger
from finboard.managers.cache_manager import CacheManager
from finboard.repositories.factory import RepositoryFactory
from finboard.schemas.ledger import Portfolio
from finboard.schemas.user_data import UserData
from finboard.services.portfolio_service import SelectionPolicy, resolve_active_portfolio

DEFAULT_PORTFOLIO_NAME = "My First Portfolio"

metrics_cache = CacheManager(prefix="metrics")


def configured_policy() -> SelectionPolicy:
    return SelectionPolicy(settings.ACTIVE_PORTFOLIO_POLICY)


def initial_user_data(ids: IdGenerator = id_generator) -> UserData:
    portfolio = Portfolio(id=ids.next_id(), name=DEFAULT_PORTFOLIO_NAME)
    return UserData(portfolios=[portfolio], active_portfolio_id=portfolio.id)


class UserDataService:
    """
    Loads and saves a user's document and resolves the active portfolio.

    Every mutation in the app is load -> change in memory -> ``save``.
    """

    def __init__(
            self,
            factory: RepositoryFactory,
            policy: Optional[SelectionPolicy] = None,
            ids: IdGenerator = id_generator,
    ):
        self.repo = factory.get_user_document_repository()
        self.policy = policy or configured_policy()
        self.ids = ids

    def load(self, user_id: str) -> UserData:
        user_data = self.repo.load(user_id)
        if user_data is None:
            user_data = initial_user_data(self.ids)
            self.repo.save(user_id, user_data)
            logger.info(f"Initialized document for user {user_id}")
            return user_data

        if self.policy == SelectionPolicy.STRICT:
            before = user_data.active_portfolio_id
            resolve_active_portfolio(user_data, self.policy)
            if user_data.active_portfolio_id != before:
                logger.info(
                    f"Corrected active portfolio for user {user_id}: {before} -> {user_data.active_portfolio_id}"
                )
                self.save(user_id, user_data)
        return user_data

    def save(self, user_id: str, user_data: UserData) -> None:
        self.repo.save(user_id, user_data)
        metrics_cache.delete("active", user_id=user_id)

    def active_portfolio(self, user_data: UserData) -> Portfolio:
        return resolve_active_portfolio(user_data, self.policy)
