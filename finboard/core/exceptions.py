class LedgerError(Exception):
    """Base class for errors raised by the ledger core"""
    status_code = 400


class LedgerValidationError(LedgerError):
    """User-entered data violates a ledger invariant; state is left unchanged"""
    status_code = 400


class DuplicateSymbolError(LedgerValidationError):
    status_code = 409

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(
            f"Asset with symbol {symbol} already exists. Please add transactions to the existing asset."
        )


class OversellError(LedgerValidationError):
    def __init__(self, requested: float, held: float):
        self.requested = requested
        self.held = held
        super().__init__(f"Cannot sell more shares ({requested:g}) than you own ({held:g}).")


class NoPortfolioError(LedgerValidationError):
    def __init__(self):
        super().__init__("No portfolio exists yet. Create a portfolio first.")


class LastPortfolioError(LedgerValidationError):
    def __init__(self):
        super().__init__("You cannot delete your only portfolio.")


class NotFoundError(LedgerError):
    status_code = 404


class ImportAbortError(LedgerError):
    """The input cannot be interpreted safely; nothing was applied"""
    status_code = 400


class UnreadableFileError(ImportAbortError):
    pass


class HeaderNotFoundError(ImportAbortError):
    def __init__(self):
        super().__init__(
            'Could not find a header row with "Symbol" column. Please check your spreadsheet format.'
        )


class NoImportableRowsError(ImportAbortError):
    def __init__(self, skipped_rows=None):
        self.skipped_rows = list(skipped_rows or [])
        super().__init__(
            "No importable transactions found. Make sure the file contains "
            "Buy, Sell, or Dividend transactions with valid symbols."
        )
