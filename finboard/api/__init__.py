from fastapi import APIRouter

from .routes.portfolios import router as portfolios_router
from .routes.holdings import router as holdings_router
from .routes.transactions import router as transactions_router
from .routes.prices import router as prices_router
from .routes.imports import router as imports_router
from .routes.profile import router as profile_router

api_router = APIRouter()
api_router.include_router(portfolios_router, prefix="/portfolios", tags=["Portfolios"])
api_router.include_router(holdings_router, prefix="/holdings", tags=["Holdings"])
api_router.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
api_router.include_router(prices_router, prefix="/prices", tags=["Prices"])
api_router.include_router(imports_router, prefix="/imports", tags=["Imports"])
api_router.include_router(profile_router, prefix="/profile", tags=["Profile"])
