import unittest
from datetime import date
from unittest.mock import patch

from finboard.repositories.factory import RepositoryFactory
from finboard.schemas.ledger import AssetType, Portfolio
from finboard.schemas.user_data import UserData
from finboard.services.holdings_service import add_holding
from finboard.services.market_data import refresh_all_users_prices, refresh_portfolio_prices
from finboard.tasks.refresh import refresh_prices_task
from support import FakeRedis, fixed_ids, make_session_factory


class MarketDataRefreshTests(unittest.TestCase):
    def setUp(self):
        self.redis = FakeRedis()
        patcher = patch("finboard.managers.cache_manager.redis_client", self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.session_factory = make_session_factory()
        self.db = self.session_factory()
        self.addCleanup(self.db.close)
        self.repo = RepositoryFactory(self.db).get_user_document_repository()

        ids = fixed_ids()
        portfolio = Portfolio(id=1, name="Main")
        add_holding(portfolio, "AAPL", "Apple", AssetType.STOCK, 2, 100, date(2024, 1, 2), ids=ids)
        add_holding(portfolio, "MSFT", "Microsoft", AssetType.STOCK, 1, 300, date(2024, 1, 2), ids=ids)
        self.repo.save("alice", UserData(portfolios=[portfolio], active_portfolio_id=1))
        self.repo.save("bob", UserData(portfolios=[Portfolio(id=2, name="Empty")], active_portfolio_id=2))

    def test_refresh_portfolio_reports_missing_quotes(self):
        portfolio = self.repo.load("alice").portfolios[0]

        updated, missing = refresh_portfolio_prices(portfolio, fetch=lambda symbols: {"AAPL": 120.0})

        self.assertEqual(updated, ["AAPL"])
        self.assertEqual(missing, ["MSFT"])
        self.assertEqual(portfolio.find_by_symbol("AAPL").total_value, 240)

    def test_refresh_all_users(self):
        requested = []

        def fetch(symbols):
            requested.append(symbols)
            return {"AAPL": 110.0, "MSFT": 310.0}

        saved = refresh_all_users_prices(self.db, fetch=fetch)

        self.assertEqual(saved, 1)
        self.assertEqual(requested, [["AAPL", "MSFT"]])
        holdings = {h.symbol: h for h in self.repo.load("alice").portfolios[0].holdings}
        self.assertEqual(holdings["AAPL"].current_price, 110)
        self.assertEqual(holdings["MSFT"].gain_loss, 10)

    def test_failed_fetch_skips_user(self):
        def fetch(symbols):
            raise ValueError("No data found")

        self.assertEqual(refresh_all_users_prices(self.db, fetch=fetch), 0)
        self.assertEqual(self.repo.load("alice").portfolios[0].holdings[0].current_price, 100)

    def test_task_clears_metrics_cache(self):
        self.redis.set("metrics:user:alice:active", "{}")

        with patch("finboard.tasks.refresh.SessionLocal", self.session_factory), \
                patch("finboard.services.market_data.fetch_latest_prices", return_value={"AAPL": 105.0}):
            refreshed = refresh_prices_task()

        self.assertEqual(refreshed, 1)
        self.assertEqual(self.redis.store, {})


if __name__ == "__main__":
    unittest.main()
