from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class AssetType(str, Enum):
    STOCK = "Stock"
    ETF = "ETF"
    BOND = "Bond"
    CRYPTO = "Crypto"
    MUTUAL_FUND = "Mutual Fund"
    OTHER = "Other"


class TransactionType(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    DIVIDEND = "Dividend"


class Holding(BaseModel):
    id: int
    symbol: str
    name: str = ""
    asset_type: AssetType = AssetType.STOCK
    shares: float = 0.0
    average_cost: float = 0.0
    current_price: float = 0.0
    total_value: float = 0.0
    gain_loss: float = 0.0
    gain_loss_percent: float = 0.0

    model_config = ConfigDict(extra="ignore")

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("asset_type", mode="before")
    @classmethod
    def _known_asset_type(cls, v):
        if v in (None, ""):
            return AssetType.STOCK
        try:
            return AssetType(v)
        except ValueError:
            return AssetType.OTHER

    @field_validator("current_price", mode="before")
    @classmethod
    def _price_or_zero(cls, v):
        return 0.0 if v is None else v


class Transaction(BaseModel):
    id: int
    holding_id: int = Field(validation_alias=AliasChoices("holding_id", "holdingId"))
    type: TransactionType
    date: str
    shares: float = 0.0
    price: Optional[float] = None
    total: float = 0.0

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Portfolio(BaseModel):
    id: int
    name: str
    holdings: List[Holding] = Field(default_factory=list)
    transactions: List[Transaction] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("holdings", "transactions", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_PORTFOLIO_ID

    def find_holding(self, holding_id: int) -> Optional[Holding]:
        return next((h for h in self.holdings if h.id == holding_id), None)

    def find_by_symbol(self, symbol: str) -> Optional[Holding]:
        key = (symbol or "").strip().upper()
        return next((h for h in self.holdings if h.symbol.upper() == key), None)

    def transactions_for(self, holding_id: int) -> List[Transaction]:
        return [t for t in self.transactions if t.holding_id == holding_id]


PLACEHOLDER_PORTFOLIO_ID = 0


def placeholder_portfolio() -> Portfolio:
    """Stand-in returned when a user has no portfolios; never persisted."""
    return Portfolio(id=PLACEHOLDER_PORTFOLIO_ID, name="No Portfolios")
