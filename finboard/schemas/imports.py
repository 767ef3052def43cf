from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from finboard.schemas.ledger import Holding, TransactionType


class ColumnMap(BaseModel):
    """Positions of the semantic columns inside the detected header row."""
    date: Optional[int] = None
    activity_type: Optional[int] = None
    description: Optional[int] = None
    symbol: Optional[int] = None
    quantity: Optional[int] = None
    price: Optional[int] = None
    amount: Optional[int] = None


class StagedTransaction(BaseModel):
    row: int
    type: TransactionType
    date: str
    shares: float
    price: float
    total: float
    symbol: str
    description: str = ""


class SkippedRow(BaseModel):
    row: int
    reason: str
    symbol: Optional[str] = None
    description: Optional[str] = None
    activity_type: Optional[str] = None


class CandidateHolding(BaseModel):
    symbol: str
    name: str


class ImportPreview(BaseModel):
    source: str
    holdings: List[CandidateHolding] = Field(default_factory=list)
    transactions: List[StagedTransaction] = Field(default_factory=list)
    skipped_rows: List[SkippedRow] = Field(default_factory=list)


class ImportSummary(BaseModel):
    new_holding_count: int
    transaction_count: int
    counts_by_type: Dict[str, int]
    skipped_rows: List[SkippedRow]
    new_symbols: List[str]
    existing_symbols: List[str]


class ImportPreviewOut(BaseModel):
    import_id: str
    portfolio_id: int
    summary: ImportSummary
    transactions: List[StagedTransaction]


class ImportResult(BaseModel):
    portfolio_id: int
    created_holdings: List[Holding]
    transaction_count: int
    affected_holding_ids: List[int]
