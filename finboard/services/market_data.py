from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from finboard.clients.yfinance_client import fetch_latest_prices
from finboard.core.logger import logger
from finboard.repositories.factory import RepositoryFactory
from finboard.schemas.ledger import Portfolio
from finboard.services.holdings_service import apply_prices
from finboard.services.user_data_service import UserDataService

PriceFetcher = Callable[[List[str]], Dict[str, float]]


def refresh_portfolio_prices(
        portfolio: Portfolio,
        fetch: Optional[PriceFetcher] = None,
) -> Tuple[List[str], List[str]]:
    """Quote every holding in the portfolio and apply the prices. Returns (updated, missing)."""
    fetch = fetch or fetch_latest_prices
    symbols = [h.symbol for h in portfolio.holdings]
    if not symbols:
        return [], []

    prices = fetch(symbols)
    updated = apply_prices(portfolio, prices)
    missing = [s for s in symbols if s not in updated]
    if missing:
        logger.warning(f"No price for {', '.join(missing)} in portfolio {portfolio.id}")
    return updated, missing


def refresh_all_users_prices(db: Session, fetch: Optional[PriceFetcher] = None) -> int:
    """Refresh prices across every portfolio of every stored user. Returns the number of users saved."""
    fetch = fetch or fetch_latest_prices
    service = UserDataService(RepositoryFactory(db))
    saved = 0
    for user_id in service.repo.list_user_ids():
        user_data = service.load(user_id)
        symbols = sorted({h.symbol for p in user_data.portfolios for h in p.holdings})
        if not symbols:
            continue
        try:
            prices = fetch(symbols)
        except Exception as e:
            logger.error(f"Price fetch failed for user {user_id}: {e}", exc_info=True)
            continue
        for portfolio in user_data.portfolios:
            apply_prices(portfolio, prices)
        service.save(user_id, user_data)
        saved += 1
    logger.info(f"Refreshed prices for {saved} users")
    return saved
