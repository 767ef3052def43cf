import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from finboard.core.db import get_db
from finboard.main import app
from support import FakeRedis, make_session_factory

CSV_EXPORT = (
    "Brokerage export\n"
    "Transaction Date,Activity Type,Description,Symbol,Quantity,Price ($),Amount ($)\n"
    "01/15/2024,Bought,MICROSOFT CORP,MSFT,3,400.00,\"-1,200.00\"\n"
    "01/20/2024,Dividend,APPLE INC,AAPL,,,2.40\n"
    "01/21/2024,Journal,CASH SWEEP,,,,100\n"
)


class ApiTestCase(unittest.TestCase):
    user = "alice"

    def setUp(self):
        self.redis = FakeRedis()
        patcher = patch("finboard.managers.cache_manager.redis_client", self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

        session_factory = make_session_factory()

        def override_get_db():
            db = session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def call(self, method, url, user=None, **kwargs):
        headers = {"X-User-Id": user or self.user}
        return self.client.request(method, url, headers=headers, **kwargs)

    def add_apple(self):
        response = self.call("POST", "/holdings/", json={
            "symbol": "aapl", "name": "Apple Inc", "asset_type": "Stock",
            "shares": 10, "price": 150, "date": "2024-01-15",
        })
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class PortfolioRoutesTests(ApiTestCase):
    def test_new_user_gets_a_default_portfolio(self):
        body = self.call("GET", "/portfolios/").json()

        self.assertEqual([p["name"] for p in body["portfolios"]], ["My First Portfolio"])
        self.assertEqual(body["active_portfolio_id"], body["portfolios"][0]["id"])

    def test_create_activate_and_delete(self):
        first_id = self.call("GET", "/portfolios/").json()["active_portfolio_id"]

        created = self.call("POST", "/portfolios/", json={"name": "Trading"})
        self.assertEqual(created.status_code, 201)
        second_id = created.json()["id"]
        self.assertEqual(self.call("GET", "/portfolios/active").json()["id"], second_id)

        renamed = self.call("PATCH", f"/portfolios/{second_id}", json={"name": "Swing"})
        self.assertEqual(renamed.json()["name"], "Swing")

        self.assertEqual(self.call("PUT", "/portfolios/active", json={"portfolio_id": 404}).status_code, 404)

        deleted = self.call("DELETE", f"/portfolios/{second_id}")
        self.assertEqual(deleted.json()["active_portfolio_id"], first_id)

        last = self.call("DELETE", f"/portfolios/{first_id}")
        self.assertEqual(last.status_code, 400)
        self.assertEqual(last.json()["detail"], "You cannot delete your only portfolio.")

    def test_blank_portfolio_name_is_rejected(self):
        self.assertEqual(self.call("POST", "/portfolios/", json={"name": "   "}).status_code, 422)

    def test_users_are_isolated(self):
        self.add_apple()
        self.assertEqual(self.call("GET", "/holdings/", user="bob").json(), [])


class LedgerRoutesTests(ApiTestCase):
    def test_buy_price_sell_flow(self):
        holding = self.add_apple()

        duplicate = self.call("POST", "/holdings/", json={
            "symbol": "AAPL", "name": "Again", "shares": 1, "price": 1, "date": "2024-01-16",
        })
        self.assertEqual(duplicate.status_code, 409)

        priced = self.call("POST", "/prices/", json={"prices": {"AAPL": 200, "TSLA": 10}}).json()
        self.assertEqual(priced["updated"], ["AAPL"])
        self.assertEqual(priced["metrics"]["total_value"], 2000)
        self.assertEqual(priced["metrics"]["daily_change"], 500)

        sell = self.call("POST", "/transactions/", json={
            "holding_id": holding["id"], "type": "Sell", "date": "2024-02-01", "shares": 4, "price": 210,
        })
        self.assertEqual(sell.status_code, 201, sell.text)

        oversell = self.call("POST", "/transactions/", json={
            "holding_id": holding["id"], "type": "Sell", "date": "2024-02-02", "shares": 7, "price": 210,
        })
        self.assertEqual(oversell.status_code, 400)
        self.assertEqual(oversell.json()["detail"], "Cannot sell more shares (7) than you own (6).")

        metrics = self.call("GET", "/portfolios/active/metrics").json()
        self.assertEqual(metrics["total_value"], 1260)
        self.assertAlmostEqual(metrics["daily_change_percent"], 40.0)
        self.assertIn("metrics:user:alice:active", self.redis.store)

        dates = [t["date"] for t in self.call("GET", "/transactions/").json()]
        self.assertEqual(dates, ["2024-02-01", "2024-01-15"])

    def test_non_finite_numbers_are_rejected(self):
        holding = self.add_apple()

        for quote in ("Infinity", "NaN"):
            response = self.call("POST", "/prices/", json={"prices": {"AAPL": quote}})
            self.assertEqual(response.status_code, 422, quote)

        buy = self.call("POST", "/transactions/", json={
            "holding_id": holding["id"], "type": "Buy", "date": "2024-02-01", "shares": 1, "price": "Infinity",
        })
        self.assertEqual(buy.status_code, 422)
        created = self.call("POST", "/holdings/", json={
            "symbol": "MSFT", "name": "Microsoft", "shares": "NaN", "price": 300, "date": "2024-01-16",
        })
        self.assertEqual(created.status_code, 422)

        [stored] = self.call("GET", "/holdings/").json()
        self.assertEqual(stored["current_price"], 150)
        self.assertEqual(stored["total_value"], 1500)
        self.assertEqual(len(self.call("GET", "/transactions/").json()), 1)

    def test_dividend_and_unknown_holding(self):
        holding = self.add_apple()

        dividend = self.call("POST", "/transactions/", json={
            "holding_id": holding["id"], "type": "Dividend", "date": "2024-03-01", "shares": 12.5,
        })
        self.assertEqual(dividend.json()["total"], 12.5)
        self.assertIsNone(dividend.json()["price"])

        missing = self.call("POST", "/transactions/", json={
            "holding_id": 404, "type": "Buy", "date": "2024-03-01", "shares": 1, "price": 1,
        })
        self.assertEqual(missing.status_code, 404)

    def test_edit_recalculate_and_delete_holding(self):
        holding = self.add_apple()

        edited = self.call("PATCH", f"/holdings/{holding['id']}", json={"name": "Apple"})
        self.assertEqual(edited.json()["name"], "Apple")

        recalculated = self.call("POST", f"/holdings/{holding['id']}/recalculate")
        self.assertEqual(recalculated.json()["shares"], 10)
        self.assertIsNone(self.call("POST", "/holdings/404/recalculate").json())

        self.assertTrue(self.call("DELETE", f"/holdings/{holding['id']}").json()["deleted"])
        self.assertFalse(self.call("DELETE", f"/holdings/{holding['id']}").json()["deleted"])
        self.assertEqual(self.call("GET", "/transactions/").json(), [])

    def test_refresh_prices_from_market_data(self):
        self.add_apple()

        with patch("finboard.services.market_data.fetch_latest_prices", return_value={"AAPL": 190.0}):
            body = self.call("POST", "/prices/refresh").json()

        self.assertEqual(body["updated"], ["AAPL"])
        self.assertEqual(body["missing"], [])
        self.assertEqual(body["metrics"]["total_value"], 1900)

    def test_refresh_all_is_queued(self):
        task = MagicMock()
        task.delay.return_value.id = "task-1"
        with patch("finboard.api.routes.prices.refresh_prices_task", task):
            body = self.call("POST", "/prices/refresh/all").json()
        self.assertEqual(body["task_id"], "task-1")


class ImportRoutesTests(ApiTestCase):
    def upload(self, content, filename="export.csv"):
        return self.call("POST", "/imports/spreadsheet", files={"file": (filename, content, "text/csv")})

    def test_preview_then_commit_once(self):
        self.add_apple()

        preview = self.upload(CSV_EXPORT.encode("utf-8"))
        self.assertEqual(preview.status_code, 200, preview.text)
        body = preview.json()
        self.assertEqual(body["summary"]["new_symbols"], ["MSFT"])
        self.assertEqual(body["summary"]["existing_symbols"], ["AAPL"])
        self.assertEqual(body["summary"]["skipped_rows"][0]["reason"], "No symbol")
        self.assertEqual(len(self.call("GET", "/holdings/").json()), 1)

        committed = self.call("POST", f"/imports/{body['import_id']}/commit")
        self.assertEqual(committed.status_code, 200, committed.text)
        self.assertEqual(committed.json()["transaction_count"], 2)
        self.assertEqual(
            sorted(h["symbol"] for h in self.call("GET", "/holdings/").json()),
            ["AAPL", "MSFT"],
        )

        again = self.call("POST", f"/imports/{body['import_id']}/commit")
        self.assertEqual(again.status_code, 404)

    def test_preview_belongs_to_its_user(self):
        import_id = self.upload(CSV_EXPORT.encode("utf-8")).json()["import_id"]
        self.assertEqual(self.call("POST", f"/imports/{import_id}/commit", user="bob").status_code, 404)

    def test_discard(self):
        import_id = self.upload(CSV_EXPORT.encode("utf-8")).json()["import_id"]

        self.assertTrue(self.call("DELETE", f"/imports/{import_id}").json()["discarded"])
        self.assertEqual(self.call("POST", f"/imports/{import_id}/commit").status_code, 404)

    def test_abort_errors(self):
        no_header = self.upload(b"Date,Ticker\n01/01/2024,AAPL\n")
        self.assertEqual(no_header.status_code, 400)

        nothing = self.upload(b"Symbol,Action\n,Journal\nAAPL,Transfer\n")
        self.assertEqual(nothing.status_code, 400)
        self.assertEqual(len(nothing.json()["detail"]["skipped_rows"]), 2)

        unsupported = self.upload(b"whatever", filename="export.pdf")
        self.assertEqual(unsupported.status_code, 400)

    def test_api_records(self):
        records = [{
            "transactionType": "Buy",
            "transactionDate": 1705276800000,
            "amount": -1500,
            "description": "NVIDIA CORP",
            "brokerage": {"product": {"symbol": "NVDA"}, "quantity": 2, "price": 750},
        }]

        preview = self.call("POST", "/imports/records", json=records)
        self.assertEqual(preview.status_code, 200, preview.text)
        import_id = preview.json()["import_id"]

        result = self.call("POST", f"/imports/{import_id}/commit").json()
        self.assertEqual(result["created_holdings"][0]["name"], "Nvidia Corp")
        self.assertEqual(result["created_holdings"][0]["shares"], 2)


class ProfileRoutesTests(ApiTestCase):
    def test_profile_defaults_and_update(self):
        profile = self.call("GET", "/profile/").json()
        self.assertEqual(profile["name"], "New User")

        profile["risk_tolerance"] = "Aggressive"
        self.call("PUT", "/profile/", json=profile)

        self.assertEqual(self.call("GET", "/profile/").json()["risk_tolerance"], "Aggressive")


if __name__ == "__main__":
    unittest.main()
