from fastapi import APIRouter, Depends, HTTPException

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.core.logger import logger
from finboard.schemas.portfolio import PriceUpdateIn, PriceUpdateOut
from finboard.services.holdings_service import apply_prices
from finboard.services.market_data import refresh_portfolio_prices
from finboard.services.portfolio_service import calculate_portfolio_metrics
from finboard.services.user_data_service import UserDataService
from finboard.tasks.refresh import refresh_prices_task

router = APIRouter()


@router.post("/", response_model=PriceUpdateOut)
def update_prices(
        payload: PriceUpdateIn,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Apply client-supplied quotes to the active portfolio and recompute every holding."""
    try:
        user_data = service.load(user_id)
        portfolio = service.active_portfolio(user_data)
        updated = apply_prices(portfolio, payload.prices)
        if not portfolio.is_placeholder:
            service.save(user_id, user_data)
        return PriceUpdateOut(
            updated=updated,
            missing=[h.symbol for h in portfolio.holdings if h.symbol not in updated],
            metrics=calculate_portfolio_metrics(portfolio),
        )
    except Exception as e:
        logger.error(f"update_prices failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to update prices")


@router.post("/refresh", response_model=PriceUpdateOut)
def refresh_prices(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Quote the active portfolio's holdings from Yahoo Finance."""
    try:
        user_data = service.load(user_id)
        portfolio = service.active_portfolio(user_data)
        updated, missing = refresh_portfolio_prices(portfolio)
        if updated:
            service.save(user_id, user_data)
        return PriceUpdateOut(
            updated=updated,
            missing=missing,
            metrics=calculate_portfolio_metrics(portfolio),
        )
    except Exception as e:
        logger.error(f"refresh_prices failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to refresh prices")


@router.post("/refresh/all")
def refresh_all_prices():
    """
    Trigger a background task to refresh prices for every user.
    """
    try:
        task = refresh_prices_task.delay()
        return {
            "status": "success",
            "message": "Price refresh has been queued.",
            "task_id": task.id
        }
    except Exception as e:
        logger.error(f"refresh_all_prices failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to queue price refresh")
