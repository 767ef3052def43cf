from io import BytesIO
from pathlib import Path
from typing import Any, List

import pandas as pd

from finboard.core.exceptions import UnreadableFileError
from finboard.core.logger import logger

EXCEL_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}
TEXT_EXTENSIONS = {".csv", ".txt"}

# brokerage exports put short preamble lines above a wide table
MAX_COLUMNS = 256


def _trim_trailing_columns(df: pd.DataFrame) -> pd.DataFrame:
    filled = [i for i, col in enumerate(df.columns) if df[col].notna().any()]
    if not filled:
        return df.iloc[:, :0]
    return df.iloc[:, : filled[-1] + 1]


def _read_csv(content: bytes) -> pd.DataFrame:
    last_error = None
    for encoding in ("utf-8-sig", "latin-1"):
        try:
            return pd.read_csv(
                BytesIO(content),
                header=None,
                names=range(MAX_COLUMNS),
                dtype=object,
                keep_default_na=False,
                na_values=[""],
                skip_blank_lines=False,
                encoding=encoding,
            )
        except UnicodeDecodeError as e:
            last_error = e
    raise last_error


def read_grid(filename: str, content: bytes) -> List[List[Any]]:
    """
    Read the first sheet of an uploaded spreadsheet as rows of raw cells.

    Blank cells come back as None; spreadsheet date cells keep their
    datetime type.
    """
    suffix = Path(filename or "").suffix.lower()
    if suffix not in EXCEL_EXTENSIONS | TEXT_EXTENSIONS:
        raise UnreadableFileError(
            f"Unsupported file type '{suffix or filename}'. Upload a .csv, .xlsx or .xls file."
        )
    if not content:
        raise UnreadableFileError("The uploaded file is empty.")

    try:
        if suffix in EXCEL_EXTENSIONS:
            df = pd.read_excel(BytesIO(content), sheet_name=0, header=None, dtype=object)
        else:
            df = _read_csv(content)
    except Exception as e:
        logger.warning(f"Failed to read spreadsheet {filename}: {e}")
        raise UnreadableFileError("Error reading file. Please make sure it's a valid spreadsheet.") from e

    df = _trim_trailing_columns(df).astype(object)
    df = df.where(df.notna(), None)
    grid = df.values.tolist()
    logger.info(f"Read {len(grid)} rows from {filename}")
    return grid
