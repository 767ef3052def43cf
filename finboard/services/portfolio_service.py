from enum import Enum
from typing import Optional

from finboard.core.exceptions import LastPortfolioError, NotFoundError
from finboard.core.ids import IdGenerator, id_generator
from finboard.schemas.ledger import Portfolio, placeholder_portfolio
from finboard.schemas.portfolio import PortfolioMetrics
from finboard.schemas.user_data import UserData


class SelectionPolicy(str, Enum):
    """
    How an invalid active-portfolio pointer is handled.

    STRICT writes the fallback back into the document so the caller persists it;
    LAZY resolves the fallback on every read and leaves the document alone.
    """
    STRICT = "strict"
    LAZY = "lazy"


def calculate_portfolio_metrics(portfolio: Optional[Portfolio]) -> PortfolioMetrics:
    """
    Roll holdings up into portfolio totals.

    ``daily_change`` is the cumulative unrealized gain/loss across holdings,
    not a one-day delta.
    """
    if portfolio is None or not portfolio.holdings:
        return PortfolioMetrics()

    total_value = sum(h.total_value for h in portfolio.holdings)
    total_gain_loss = sum(h.gain_loss for h in portfolio.holdings)
    total_invested = sum(h.average_cost * h.shares for h in portfolio.holdings)

    return PortfolioMetrics(
        total_value=total_value,
        daily_change=total_gain_loss,
        daily_change_percent=total_gain_loss / total_invested * 100 if total_invested > 0 else 0.0,
    )


def resolve_active_portfolio(
        user_data: UserData,
        policy: SelectionPolicy = SelectionPolicy.STRICT,
) -> Portfolio:
    """
    Return the portfolio the user is working in.

    With no portfolios a placeholder (id 0) comes back; it must never be
    written to. A pointer that matches nothing falls back to the first
    portfolio.
    """
    portfolios = user_data.portfolios

    if not portfolios:
        if policy == SelectionPolicy.STRICT:
            user_data.active_portfolio_id = None
        return placeholder_portfolio()

    active = user_data.find_portfolio(user_data.active_portfolio_id) \
        if user_data.active_portfolio_id is not None else None
    if active is not None:
        return active

    fallback = portfolios[0]
    if policy == SelectionPolicy.STRICT:
        user_data.active_portfolio_id = fallback.id
    return fallback


def create_portfolio(user_data: UserData, name: str, ids: IdGenerator = id_generator) -> Portfolio:
    portfolio = Portfolio(id=ids.next_id(), name=name.strip())
    user_data.portfolios.append(portfolio)
    user_data.active_portfolio_id = portfolio.id
    return portfolio


def get_portfolio(user_data: UserData, portfolio_id: int) -> Portfolio:
    portfolio = user_data.find_portfolio(portfolio_id)
    if portfolio is None:
        raise NotFoundError(f"Portfolio {portfolio_id} not found")
    return portfolio


def rename_portfolio(user_data: UserData, portfolio_id: int, name: str) -> Portfolio:
    portfolio = get_portfolio(user_data, portfolio_id)
    portfolio.name = name.strip()
    return portfolio


def set_active_portfolio(user_data: UserData, portfolio_id: int) -> Portfolio:
    portfolio = get_portfolio(user_data, portfolio_id)
    user_data.active_portfolio_id = portfolio.id
    return portfolio


def delete_portfolio(user_data: UserData, portfolio_id: int) -> None:
    get_portfolio(user_data, portfolio_id)
    if len(user_data.portfolios) <= 1:
        raise LastPortfolioError()

    user_data.portfolios = [p for p in user_data.portfolios if p.id != portfolio_id]
    if user_data.active_portfolio_id == portfolio_id:
        user_data.active_portfolio_id = user_data.portfolios[0].id
