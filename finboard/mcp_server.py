from typing import Optional

from fastmcp import FastMCP

from finboard.core.config import settings
from finboard.core.db import SessionLocal
from finboard.repositories.factory import RepositoryFactory
from finboard.services.portfolio_service import calculate_portfolio_metrics
from finboard.services.user_data_service import UserDataService

mcp = FastMCP("Finboard MCP")


def _active_portfolio(user_id: Optional[str]):
    with SessionLocal() as db:
        service = UserDataService(RepositoryFactory(db))
        user_data = service.load(user_id or settings.DEFAULT_USER_ID)
        return service.active_portfolio(user_data)


@mcp.tool()
def active_holdings(user_id: Optional[str] = None):
    """Return the holdings of the user's active portfolio"""
    portfolio = _active_portfolio(user_id)
    holdings = [h.model_dump(mode="json") for h in portfolio.holdings]
    return {
        "structuredContent": {"portfolio": portfolio.name, "holdings": holdings},
        "content": [{"type": "text", "text": f"Holdings in {portfolio.name} ({len(holdings)})"}],
    }


@mcp.tool()
def portfolio_metrics(user_id: Optional[str] = None):
    """Return total value and unrealized gain/loss of the user's active portfolio"""
    portfolio = _active_portfolio(user_id)
    metrics = calculate_portfolio_metrics(portfolio)
    return {
        "structuredContent": {"portfolio": portfolio.name, **metrics.model_dump(mode="json")},
        "content": [{"type": "text", "text": f"{portfolio.name}: total value {metrics.total_value:.2f}"}],
    }


@mcp.tool()
def recent_transactions(limit: Optional[int] = None, user_id: Optional[str] = None):
    """Return the active portfolio's transactions, newest first, optionally limited to a number of recent ones"""
    portfolio = _active_portfolio(user_id)
    items = sorted(portfolio.transactions, key=lambda t: t.date, reverse=True)
    if limit:
        items = items[:limit]
    return {
        "structuredContent": {"transactions": [i.model_dump(mode="json") for i in items]},
        "content": [{"type": "text", "text": f"Transactions: {len(items)}"}],
    }
