import math
import re
from datetime import date, datetime, timezone
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import dateparser
import pandas as pd
from slugify import slugify

from finboard.core.config import settings
from finboard.core.exceptions import HeaderNotFoundError, NoImportableRowsError, NoPortfolioError
from finboard.core.ids import IdGenerator, id_generator
from finboard.core.logger import logger
from finboard.schemas.imports import (
    CandidateHolding,
    ColumnMap,
    ImportPreview,
    ImportResult,
    ImportSummary,
    SkippedRow,
    StagedTransaction,
)
from finboard.schemas.ledger import AssetType, Holding, Portfolio, Transaction, TransactionType
from finboard.services.holdings_service import recalculate_holding

UNKNOWN_NAME = "Unknown"
EMPTY_SYMBOLS = {"", "--", "N/A"}

_US_DATE = re.compile(r"(?<!\d)(\d{1,2})[/\-](\d{1,2})[/\-](\d{4}|\d{2})(?!\d)")

# brokerage boilerplate appended to security descriptions
_NAME_NOISE = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"CONFIRM\s*NBR.*$",
        r"UNSOLICITED\s*TRADE.*$",
        r"REC\s*\d{2}/\d{2}/\d{2,4}.*$",
        r"DIVIDEND\s*REINVESTMENT.*$",
    )
]

# relative phrases ("yesterday") must not resolve against the import day
_DATEPARSER_SETTINGS = {
    "DATE_ORDER": "MDY",
    "REQUIRE_PARTS": ["day", "month", "year"],
    "PARSERS": ["custom-formats", "absolute-time"],
}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _cell(row: Sequence[Any], index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def _normalize_header(value: Any) -> str:
    """'Activity Type' -> 'activity_type', 'Price ($)' -> 'price'"""
    return slugify(_cell_text(value), separator="_")


def _is_symbol_header(value: Any) -> bool:
    return _cell_text(value).lower() == "symbol"


def _normalize_activity(value: Any) -> str:
    return " ".join(_cell_text(value).split()).lower()


def _row_is_empty(row: Sequence[Any]) -> bool:
    return all(not _cell_text(cell) for cell in row)


# --- Header discovery ---

def find_header_row(grid: Sequence[Sequence[Any]], scan_rows: Optional[int] = None) -> int:
    """
    Locate the header among the first ``scan_rows`` rows.

    A row with a "symbol" cell and a cell mentioning "activity type" or
    "action" wins; otherwise the first row with a "symbol" cell.
    """
    scan_rows = scan_rows or settings.IMPORT_HEADER_SCAN_ROWS
    rows = grid[:scan_rows]

    for index, row in enumerate(rows):
        cells = [_normalize_header(c) for c in row]
        has_activity = any("activity_type" in c or "action" in c for c in cells)
        if any(_is_symbol_header(c) for c in row) and has_activity:
            return index
    for index, row in enumerate(rows):
        if any(_is_symbol_header(c) for c in row):
            return index
    raise HeaderNotFoundError()


def _pick(headers: List[str], exact: Iterable[str] = (), contains: Iterable[str] = ()) -> Optional[int]:
    exact = tuple(exact)
    contains = tuple(contains)
    for index, header in enumerate(headers):
        if header in exact:
            return index
    for index, header in enumerate(headers):
        if header and any(key in header for key in contains):
            return index
    return None


def map_columns(header_row: Sequence[Any]) -> ColumnMap:
    headers = [_normalize_header(c) for c in header_row]

    date_column = _pick(headers, contains=("transaction_date", "trade_date"))
    if date_column is None:
        date_column = _pick(headers, contains=("date",))

    return ColumnMap(
        date=date_column,
        activity_type=_pick(headers, exact=("activity_type", "action")),
        description=_pick(headers, exact=("description",)),
        symbol=next((i for i, c in enumerate(header_row) if _is_symbol_header(c)), None),
        quantity=_pick(headers, exact=("quantity", "qty"), contains=("quantity", "qty")),
        price=_pick(headers, exact=("price",), contains=("price",)),
        amount=_pick(headers, exact=("amount",), contains=("amount",)),
    )


# --- Cell parsing ---

def parse_date(value: Any, today: Optional[date] = None) -> str:
    """
    Turn a date cell into ``YYYY-MM-DD``.

    Empty cells become today. Text that cannot be read as a date is passed
    through unchanged.
    """
    if _is_missing(value) or not _cell_text(value):
        return (today or date.today()).isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = _cell_text(value)
    match = _US_DATE.search(text)
    if match:
        month, day, year = match.groups()
        if len(year) == 2:
            year = "20" + year
        try:
            return date(int(year), int(month), int(day)).isoformat()
        except ValueError:
            pass

    parsed = dateparser.parse(text, settings=_DATEPARSER_SETTINGS)
    if parsed is None:
        logger.debug(f"Unparseable date cell kept as-is: {text!r}")
        return text
    return parsed.date().isoformat()


def parse_number(value: Any) -> float:
    """'$1,234.50' -> 1234.5, '(12.00)' -> -12.0; anything unreadable -> 0"""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, Real):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    text = str(value).strip().replace("$", "").replace(",", "").replace(" ", "")
    negative = text.startswith("(") and text.endswith(")")
    text = text.strip("()")
    try:
        number = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return -number if negative else number


def clean_holding_name(description: Any) -> str:
    name = _cell_text(description)
    if not name:
        return UNKNOWN_NAME
    for pattern in _NAME_NOISE:
        name = pattern.sub("", name)
    name = name.strip()
    if not name:
        return UNKNOWN_NAME
    if name == name.upper() and len(name) > 5:
        name = " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))
    return name


def _vocabulary(activity_types: Mapping[str, str]) -> Dict[str, TransactionType]:
    vocabulary = {}
    for text, value in activity_types.items():
        try:
            vocabulary[_normalize_activity(text)] = TransactionType(value)
        except ValueError:
            logger.warning(f"Ignoring activity mapping {text!r} -> {value!r}: unknown transaction type")
    return vocabulary


# --- Staging ---

def _finish_preview(
        source: str,
        staged: List[StagedTransaction],
        skipped: List[SkippedRow],
        names: Dict[str, str],
) -> ImportPreview:
    if not staged:
        logger.info(f"{source} import has no importable rows ({len(skipped)} skipped)")
        raise NoImportableRowsError(skipped)

    preview = ImportPreview(
        source=source,
        holdings=[CandidateHolding(symbol=s, name=n) for s, n in names.items()],
        transactions=staged,
        skipped_rows=skipped,
    )
    logger.info(
        f"Staged {source} import: {len(staged)} transactions, "
        f"{len(preview.holdings)} symbols, {len(skipped)} skipped"
    )
    return preview


def stage_grid(
        grid: Sequence[Sequence[Any]],
        activity_types: Optional[Mapping[str, str]] = None,
        scan_rows: Optional[int] = None,
) -> ImportPreview:
    """
    Classify every row below the detected header of a brokerage export.

    Nothing is written to any portfolio. Rows are numbered as they appear in
    the sheet (first row is 1).
    """
    rows = [list(r) if r is not None else [] for r in grid]
    header_index = find_header_row(rows, scan_rows)
    columns = map_columns(rows[header_index])
    vocabulary = _vocabulary(activity_types if activity_types is not None else settings.activity_types)

    staged: List[StagedTransaction] = []
    skipped: List[SkippedRow] = []
    names: Dict[str, str] = {}

    for index in range(header_index + 1, len(rows)):
        row = rows[index]
        if _row_is_empty(row):
            continue

        row_number = index + 1
        symbol = _cell_text(_cell(row, columns.symbol)).upper()
        activity = _normalize_activity(_cell(row, columns.activity_type))
        description = _cell_text(_cell(row, columns.description))

        if symbol in EMPTY_SYMBOLS:
            skipped.append(SkippedRow(
                row=row_number,
                reason="No symbol",
                description=description or None,
                activity_type=activity or None,
            ))
            continue

        tx_type = vocabulary.get(activity)
        if tx_type is None:
            skipped.append(SkippedRow(
                row=row_number,
                reason=f"Unsupported type: {activity}",
                symbol=symbol,
                description=description or None,
                activity_type=activity or None,
            ))
            continue

        staged.append(StagedTransaction(
            row=row_number,
            type=tx_type,
            date=parse_date(_cell(row, columns.date)),
            shares=abs(parse_number(_cell(row, columns.quantity))),
            price=abs(parse_number(_cell(row, columns.price))),
            total=abs(parse_number(_cell(row, columns.amount))),
            symbol=symbol,
            description=description,
        ))
        names.setdefault(symbol, clean_holding_name(description))

    return _finish_preview("spreadsheet", staged, skipped, names)


def _record_date(value: Any) -> str:
    # brokerage APIs send epoch milliseconds
    if isinstance(value, Real) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc).date().isoformat()
    return parse_date(value)


def stage_api_records(
        records: Sequence[Mapping[str, Any]],
        activity_types: Optional[Mapping[str, str]] = None,
) -> ImportPreview:
    """
    Stage transactions fetched from a brokerage API.

    Each record carries ``transactionType``, ``transactionDate`` (epoch ms),
    ``amount``, ``description`` and a ``brokerage`` block with ``quantity``,
    ``price`` and ``product.symbol``. Record positions are 1-based.
    """
    vocabulary = _vocabulary(activity_types if activity_types is not None else settings.api_activity_types)

    staged: List[StagedTransaction] = []
    skipped: List[SkippedRow] = []
    names: Dict[str, str] = {}

    for position, record in enumerate(records, start=1):
        if not isinstance(record, Mapping):
            skipped.append(SkippedRow(row=position, reason="Malformed record"))
            continue

        brokerage = record.get("brokerage") or {}
        product = brokerage.get("product") or {}
        symbol = _cell_text(product.get("symbol")).upper()
        activity = _normalize_activity(record.get("transactionType"))
        description = _cell_text(record.get("description"))

        if symbol in EMPTY_SYMBOLS:
            skipped.append(SkippedRow(
                row=position,
                reason="No symbol",
                description=description or None,
                activity_type=activity or None,
            ))
            continue

        tx_type = vocabulary.get(activity)
        if tx_type is None:
            skipped.append(SkippedRow(
                row=position,
                reason=f"Unsupported type: {activity}",
                symbol=symbol,
                description=description or None,
                activity_type=activity or None,
            ))
            continue

        staged.append(StagedTransaction(
            row=position,
            type=tx_type,
            date=_record_date(record.get("transactionDate")),
            shares=abs(parse_number(brokerage.get("quantity"))),
            price=abs(parse_number(brokerage.get("price"))),
            total=abs(parse_number(record.get("amount"))),
            symbol=symbol,
            description=description,
        ))
        name = clean_holding_name(description)
        if name == UNKNOWN_NAME:
            name = _cell_text(product.get("securityType")) or symbol
        names.setdefault(symbol, name)

    return _finish_preview("api", staged, skipped, names)


# --- Review & commit ---

def summarize_import(preview: ImportPreview, portfolio: Optional[Portfolio]) -> ImportSummary:
    """Compare a staged import against the portfolio it would be committed to."""
    existing, new = [], []
    for candidate in preview.holdings:
        if portfolio is not None and portfolio.find_by_symbol(candidate.symbol):
            existing.append(candidate.symbol)
        else:
            new.append(candidate.symbol)

    counts = {t.value: 0 for t in TransactionType}
    for staged in preview.transactions:
        counts[staged.type.value] += 1

    return ImportSummary(
        new_holding_count=len(new),
        transaction_count=len(preview.transactions),
        counts_by_type=counts,
        skipped_rows=preview.skipped_rows,
        new_symbols=new,
        existing_symbols=existing,
    )


def commit_import(
        portfolio: Optional[Portfolio],
        preview: ImportPreview,
        ids: IdGenerator = id_generator,
) -> ImportResult:
    """
    Apply a reviewed import to ``portfolio`` in place.

    Symbols already held reuse the existing holding; the rest get a new
    Stock holding. Every affected holding is recalculated afterwards.
    Sells are not checked against the position.
    """
    if portfolio is None or portfolio.is_placeholder:
        raise NoPortfolioError()
    if not preview.transactions:
        raise NoImportableRowsError(preview.skipped_rows)

    names = {c.symbol: c.name for c in preview.holdings}
    symbols = list(dict.fromkeys([c.symbol for c in preview.holdings] + [t.symbol for t in preview.transactions]))

    holding_ids: Dict[str, int] = {}
    created: List[Holding] = []
    for symbol in symbols:
        existing = portfolio.find_by_symbol(symbol)
        if existing is not None:
            holding_ids[symbol] = existing.id
            continue
        holding = Holding(
            id=ids.next_id(),
            symbol=symbol,
            name=names.get(symbol) or UNKNOWN_NAME,
            asset_type=AssetType.STOCK,
        )
        portfolio.holdings.append(holding)
        created.append(holding)
        holding_ids[symbol] = holding.id

    for staged in preview.transactions:
        portfolio.transactions.append(Transaction(
            id=ids.next_id(),
            holding_id=holding_ids[staged.symbol],
            type=staged.type,
            date=staged.date,
            shares=staged.shares,
            price=staged.price,
            total=staged.total,
        ))

    affected = list(dict.fromkeys(holding_ids[t.symbol] for t in preview.transactions))
    for holding_id in affected:
        recalculate_holding(portfolio, holding_id)

    logger.info(
        f"Imported {len(preview.transactions)} transactions into portfolio {portfolio.id} "
        f"({len(created)} new holdings)"
    )
    return ImportResult(
        portfolio_id=portfolio.id,
        created_holdings=created,
        transaction_count=len(preview.transactions),
        affected_holding_ids=affected,
    )
