from datetime import date as date_type
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finboard.schemas.ledger import AssetType, Holding, Transaction, TransactionType


class PortfolioMetrics(BaseModel):
    total_value: float = 0.0
    # cumulative unrealized gain/loss; the name is historical and kept for clients
    daily_change: float = 0.0
    daily_change_percent: float = 0.0


class PortfolioCreate(BaseModel):
    name: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PortfolioRename(PortfolioCreate):
    pass


class ActivePortfolioIn(BaseModel):
    portfolio_id: int


class PortfolioListItem(BaseModel):
    id: int
    name: str
    holding_count: int
    transaction_count: int


class PortfolioListOut(BaseModel):
    active_portfolio_id: Optional[int]
    portfolios: List[PortfolioListItem]


class PortfolioOut(BaseModel):
    id: int
    name: str
    holdings: List[Holding]
    transactions: List[Transaction]
    metrics: PortfolioMetrics

    model_config = ConfigDict(from_attributes=True)


class HoldingCreate(BaseModel):
    symbol: str
    name: str
    asset_type: AssetType = AssetType.STOCK
    shares: float = Field(gt=0, allow_inf_nan=False)
    price: float = Field(gt=0, allow_inf_nan=False)
    date: date_type


class HoldingUpdate(BaseModel):
    symbol: Optional[str] = None
    name: Optional[str] = None
    asset_type: Optional[AssetType] = None


class TransactionCreate(BaseModel):
    holding_id: int
    type: TransactionType
    date: date_type
    shares: float = Field(gt=0, allow_inf_nan=False)
    price: Optional[float] = Field(default=None, allow_inf_nan=False)


class PriceUpdateIn(BaseModel):
    prices: Dict[str, Annotated[float, Field(allow_inf_nan=False)]]


class PriceUpdateOut(BaseModel):
    updated: List[str]
    missing: List[str]
    metrics: PortfolioMetrics
