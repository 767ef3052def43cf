import math
from datetime import date
from typing import Dict, List, Optional

from finboard.core.exceptions import (
    DuplicateSymbolError,
    LedgerValidationError,
    NoPortfolioError,
    NotFoundError,
    OversellError,
)
from finboard.core.ids import IdGenerator, id_generator
from finboard.core.logger import logger
from finboard.schemas.ledger import AssetType, Holding, Portfolio, Transaction, TransactionType

# absorbs float noise from summing fractional share lots
SHARE_TOLERANCE = 1e-9


def recalculate_holding(portfolio: Optional[Portfolio], holding_id: int) -> Optional[Holding]:
    """
    Re-derive a holding's position fields from its transactions, in place.

    Only buys and sells move the position; dividends are ignored. Average cost
    is the weighted cost of all buys and is not reduced by sells.
    Returns None without touching anything when the portfolio or holding
    cannot be resolved.
    """
    if portfolio is None or portfolio.is_placeholder:
        return None

    holding = portfolio.find_holding(holding_id)
    if holding is None:
        return None

    transactions = portfolio.transactions_for(holding_id)
    buys = [t for t in transactions if t.type == TransactionType.BUY]
    sells = [t for t in transactions if t.type == TransactionType.SELL]

    shares_bought = sum(t.shares for t in buys)
    shares_sold = sum(t.shares for t in sells)
    total_cost = sum(t.total for t in buys)

    holding.shares = shares_bought - shares_sold
    holding.average_cost = total_cost / shares_bought if shares_bought > 0 else 0.0
    holding.total_value = holding.shares * holding.current_price

    cost_basis = holding.shares * holding.average_cost
    holding.gain_loss = holding.total_value - cost_basis
    holding.gain_loss_percent = holding.gain_loss / cost_basis * 100 if cost_basis > 0 else 0.0

    return holding


def recalculate_all(portfolio: Portfolio) -> List[Holding]:
    return [h for h in (recalculate_holding(portfolio, h.id) for h in list(portfolio.holdings)) if h]


def _positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _require_portfolio(portfolio: Portfolio) -> None:
    if portfolio is None or portfolio.is_placeholder:
        raise NoPortfolioError()


def _get_holding(portfolio: Portfolio, holding_id: int) -> Holding:
    holding = portfolio.find_holding(holding_id)
    if holding is None:
        raise NotFoundError(f"Holding {holding_id} not found")
    return holding


def add_holding(
        portfolio: Portfolio,
        symbol: str,
        name: str,
        asset_type: AssetType,
        shares: float,
        price: float,
        trade_date: date,
        ids: IdGenerator = id_generator,
) -> Holding:
    """Create a holding together with its opening buy."""
    _require_portfolio(portfolio)

    symbol = (symbol or "").strip().upper()
    name = (name or "").strip()
    if not symbol or not name:
        raise LedgerValidationError("Please fill out at least the Symbol and Name.")
    if not _positive(shares) or not _positive(price) or trade_date is None:
        raise LedgerValidationError("Please fill all purchase details: Shares, Price, and Date.")
    if portfolio.find_by_symbol(symbol):
        raise DuplicateSymbolError(symbol)

    holding = Holding(
        id=ids.next_id(),
        symbol=symbol,
        name=name,
        asset_type=asset_type,
        current_price=price,
    )
    portfolio.holdings.append(holding)
    portfolio.transactions.append(
        Transaction(
            id=ids.next_id(),
            holding_id=holding.id,
            type=TransactionType.BUY,
            date=trade_date.isoformat(),
            shares=shares,
            price=price,
            total=shares * price,
        )
    )
    recalculate_holding(portfolio, holding.id)
    logger.info(f"Added holding {symbol} to portfolio {portfolio.id}")
    return holding


def edit_holding(
        portfolio: Portfolio,
        holding_id: int,
        symbol: Optional[str] = None,
        name: Optional[str] = None,
        asset_type: Optional[AssetType] = None,
) -> Holding:
    _require_portfolio(portfolio)
    holding = _get_holding(portfolio, holding_id)

    if symbol is not None:
        symbol = symbol.strip().upper()
        if not symbol:
            raise LedgerValidationError("Symbol must not be empty.")
        other = portfolio.find_by_symbol(symbol)
        if other is not None and other.id != holding.id:
            raise DuplicateSymbolError(symbol)
        holding.symbol = symbol
    if name is not None:
        holding.name = name.strip()
    if asset_type is not None:
        holding.asset_type = asset_type
    return holding


def record_transaction(
        portfolio: Portfolio,
        holding_id: int,
        tx_type: TransactionType,
        trade_date: date,
        shares: float,
        price: Optional[float] = None,
        ids: IdGenerator = id_generator,
) -> Transaction:
    """
    Append a buy, sell or dividend to a holding.

    For dividends ``shares`` carries the cash amount and ``price`` is ignored.
    A sell larger than the current position is rejected before anything is
    appended.
    """
    _require_portfolio(portfolio)
    holding = _get_holding(portfolio, holding_id)

    is_dividend = tx_type == TransactionType.DIVIDEND
    if trade_date is None or not _positive(shares) or (not is_dividend and not _positive(price)):
        raise LedgerValidationError("Please fill all required fields.")

    if tx_type == TransactionType.SELL:
        recalculate_holding(portfolio, holding_id)
        if shares - holding.shares > SHARE_TOLERANCE:
            raise OversellError(shares, holding.shares)

    transaction = Transaction(
        id=ids.next_id(),
        holding_id=holding_id,
        type=tx_type,
        date=trade_date.isoformat(),
        shares=shares,
        price=None if is_dividend else price,
        total=shares if is_dividend else shares * price,
    )
    portfolio.transactions.append(transaction)

    if not is_dividend:
        holding.current_price = price

    recalculate_holding(portfolio, holding_id)
    return transaction


def delete_holding(portfolio: Portfolio, holding_id: int) -> bool:
    """Remove a holding and every transaction bound to it. Unknown ids are ignored."""
    if portfolio is None or portfolio.is_placeholder:
        return False
    if portfolio.find_holding(holding_id) is None:
        return False

    portfolio.holdings = [h for h in portfolio.holdings if h.id != holding_id]
    portfolio.transactions = [t for t in portfolio.transactions if t.holding_id != holding_id]
    logger.info(f"Deleted holding {holding_id} from portfolio {portfolio.id}")
    return True


def apply_prices(portfolio: Portfolio, prices: Dict[str, Optional[float]]) -> List[str]:
    """
    Set ``current_price`` from a symbol → price mapping and recompute every holding.

    Missing, non-finite or non-positive quotes leave the stored price in place.
    Returns the symbols that received a new price.
    """
    quotes = {str(k).strip().upper(): v for k, v in prices.items()}
    updated = []
    for holding in portfolio.holdings:
        price = quotes.get(holding.symbol)
        if _positive(price):
            holding.current_price = float(price)
            updated.append(holding.symbol)

    recalculate_all(portfolio)
    return updated
