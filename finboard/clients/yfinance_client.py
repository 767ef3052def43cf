from typing import Dict, List

import pandas as pd
import yfinance as yf

from finboard.core.config import settings
from finboard.core.logger import logger


def fetch_latest_prices(symbols: List[str], period: str = None) -> Dict[str, float]:
    """
    Fetch the most recent daily close for each symbol via Yahoo Finance.

    Symbols Yahoo has no data for are left out of the result.
    """
    symbols = sorted({s.strip().upper() for s in symbols if s and s.strip()})
    if not symbols:
        return {}

    data = yf.download(
        symbols,
        period=period or settings.PRICE_LOOKBACK_PERIOD,
        interval="1d",
        progress=False,
        auto_adjust=False,
    )
    if data.empty:
        raise ValueError("No data found")

    closes = data["Close"]
    if isinstance(closes, pd.Series):
        closes = closes.to_frame(name=symbols[0])

    latest = closes.ffill().iloc[-1]
    prices = {
        str(symbol).upper(): float(price)
        for symbol, price in latest.items()
        if pd.notna(price) and price > 0
    }
    logger.info(f"Fetched latest prices for {len(prices)}/{len(symbols)} symbols")
    return prices
