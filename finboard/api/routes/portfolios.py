from fastapi import APIRouter, Depends, HTTPException

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.core.exceptions import LedgerError
from finboard.core.logger import logger
from finboard.schemas.portfolio import (
    ActivePortfolioIn,
    PortfolioCreate,
    PortfolioListItem,
    PortfolioListOut,
    PortfolioMetrics,
    PortfolioOut,
    PortfolioRename,
)
from finboard.schemas.ledger import Portfolio
from finboard.services.portfolio_service import (
    calculate_portfolio_metrics,
    create_portfolio,
    delete_portfolio,
    rename_portfolio,
    set_active_portfolio,
)
from finboard.services.user_data_service import UserDataService, metrics_cache

router = APIRouter()


def _portfolio_out(portfolio: Portfolio) -> PortfolioOut:
    return PortfolioOut(
        id=portfolio.id,
        name=portfolio.name,
        holdings=portfolio.holdings,
        transactions=portfolio.transactions,
        metrics=calculate_portfolio_metrics(portfolio),
    )


@router.get("/", response_model=PortfolioListOut)
def list_portfolios(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        user_data = service.load(user_id)
        active = service.active_portfolio(user_data)
        return PortfolioListOut(
            active_portfolio_id=None if active.is_placeholder else active.id,
            portfolios=[
                PortfolioListItem(
                    id=p.id,
                    name=p.name,
                    holding_count=len(p.holdings),
                    transaction_count=len(p.transactions),
                )
                for p in user_data.portfolios
            ],
        )
    except Exception as e:
        logger.error(f"list_portfolios failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to list portfolios")


@router.post("/", response_model=PortfolioOut, status_code=201)
def add_portfolio(
        payload: PortfolioCreate,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Create a portfolio and make it the active one."""
    try:
        user_data = service.load(user_id)
        portfolio = create_portfolio(user_data, payload.name, ids=service.ids)
        service.save(user_id, user_data)
        return _portfolio_out(portfolio)
    except Exception as e:
        logger.error(f"add_portfolio failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to create portfolio")


@router.get("/active", response_model=PortfolioOut)
def get_active_portfolio(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """The active portfolio; a placeholder with id 0 when the user has none."""
    try:
        user_data = service.load(user_id)
        return _portfolio_out(service.active_portfolio(user_data))
    except Exception as e:
        logger.error(f"get_active_portfolio failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to fetch active portfolio")


@router.put("/active", response_model=PortfolioOut)
def activate_portfolio(
        payload: ActivePortfolioIn,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        user_data = service.load(user_id)
        portfolio = set_active_portfolio(user_data, payload.portfolio_id)
        service.save(user_id, user_data)
        return _portfolio_out(portfolio)
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"activate_portfolio failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to activate portfolio")


@router.get("/active/metrics", response_model=PortfolioMetrics)
def get_active_metrics(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        cached = metrics_cache.get("active", user_id=user_id)
        if cached:
            return PortfolioMetrics.model_validate(cached)

        user_data = service.load(user_id)
        metrics = calculate_portfolio_metrics(service.active_portfolio(user_data))
        metrics_cache.set(metrics.model_dump(mode="json"), "active", user_id=user_id, ttl=300)
        return metrics
    except Exception as e:
        logger.error(f"get_active_metrics failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to calculate portfolio metrics")


@router.patch("/{portfolio_id}", response_model=PortfolioOut)
def rename(
        portfolio_id: int,
        payload: PortfolioRename,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        user_data = service.load(user_id)
        portfolio = rename_portfolio(user_data, portfolio_id, payload.name)
        service.save(user_id, user_data)
        return _portfolio_out(portfolio)
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"rename_portfolio failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to rename portfolio")


@router.delete("/{portfolio_id}")
def remove_portfolio(
        portfolio_id: int,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Delete a portfolio with its holdings and transactions. The last portfolio cannot be deleted."""
    try:
        user_data = service.load(user_id)
        delete_portfolio(user_data, portfolio_id)
        service.save(user_id, user_data)
        return {"status": "ok", "active_portfolio_id": user_data.active_portfolio_id}
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=str(e))
    except Exception as e:
        logger.error(f"remove_portfolio failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to delete portfolio")
