from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.core.exceptions import LedgerError
from finboard.core.logger import logger
from finboard.schemas.ledger import Transaction, TransactionType
from finboard.schemas.portfolio import TransactionCreate
from finboard.services.holdings_service import record_transaction
from finboard.services.user_data_service import UserDataService

router = APIRouter()


@router.get("/", response_model=List[Transaction])
def list_transactions(
        holding_id: Optional[int] = None,
        type: Optional[TransactionType] = Query(default=None, description="Buy/Sell/Dividend"),
        limit: Optional[int] = Query(default=None, ge=1),
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Transactions of the active portfolio, newest first."""
    try:
        user_data = service.load(user_id)
        rows = service.active_portfolio(user_data).transactions
        if holding_id is not None:
            rows = [t for t in rows if t.holding_id == holding_id]
        if type is not None:
            rows = [t for t in rows if t.type == type]
        rows = sorted(rows, key=lambda t: t.date, reverse=True)
        return rows[:limit] if limit else rows
    except Exception as e:
        logger.error(f"list_transactions failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to list transactions")


@router.post("/", response_model=Transaction, status_code=201)
def create_transaction(
        payload: TransactionCreate,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Record a buy, sell or dividend. For dividends ``shares`` is the cash amount."""
    try:
        user_data = service.load(user_id)
        transaction = record_transaction(
            service.active_portfolio(user_data),
            holding_id=payload.holding_id,
            tx_type=payload.type,
            trade_date=payload.date,
            shares=payload.shares,
            price=payload.price,
            ids=service.ids,
        )
        service.save(user_id, user_data)
        return transaction
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"create_transaction failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to record transaction")
