from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.core.exceptions import LedgerError
from finboard.core.logger import logger
from finboard.schemas.ledger import Holding
from finboard.schemas.portfolio import HoldingCreate, HoldingUpdate
from finboard.services.holdings_service import (
    add_holding,
    delete_holding,
    edit_holding,
    recalculate_holding,
)
from finboard.services.user_data_service import UserDataService

router = APIRouter()


@router.get("/", response_model=List[Holding])
def list_holdings(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Holdings of the active portfolio, largest position first."""
    try:
        user_data = service.load(user_id)
        portfolio = service.active_portfolio(user_data)
        return sorted(portfolio.holdings, key=lambda h: h.total_value, reverse=True)
    except Exception as e:
        logger.error(f"list_holdings failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to list holdings")


@router.post("/", response_model=Holding, status_code=201)
def create_holding(
        payload: HoldingCreate,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Add an asset to the active portfolio together with its opening buy."""
    try:
        user_data = service.load(user_id)
        holding = add_holding(
            service.active_portfolio(user_data),
            symbol=payload.symbol,
            name=payload.name,
            asset_type=payload.asset_type,
            shares=payload.shares,
            price=payload.price,
            trade_date=payload.date,
            ids=service.ids,
        )
        service.save(user_id, user_data)
        return holding
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"create_holding failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to create holding")


@router.patch("/{holding_id}", response_model=Holding)
def update_holding(
        holding_id: int,
        payload: HoldingUpdate,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        user_data = service.load(user_id)
        holding = edit_holding(
            service.active_portfolio(user_data),
            holding_id,
            symbol=payload.symbol,
            name=payload.name,
            asset_type=payload.asset_type,
        )
        service.save(user_id, user_data)
        return holding
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"update_holding failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to update holding")


@router.delete("/{holding_id}")
def remove_holding(
        holding_id: int,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Delete a holding and its transactions. Unknown ids report deleted=false."""
    try:
        user_data = service.load(user_id)
        deleted = delete_holding(service.active_portfolio(user_data), holding_id)
        if deleted:
            service.save(user_id, user_data)
        return {"status": "ok", "deleted": deleted}
    except Exception as e:
        logger.error(f"remove_holding failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to delete holding")


@router.post("/{holding_id}/recalculate", response_model=Optional[Holding])
def recalculate(
        holding_id: int,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Re-derive a holding from its transactions. Returns null for unknown ids."""
    try:
        user_data = service.load(user_id)
        holding = recalculate_holding(service.active_portfolio(user_data), holding_id)
        if holding is not None:
            service.save(user_id, user_data)
        return holding
    except Exception as e:
        logger.error(f"recalculate failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to recalculate holding")
