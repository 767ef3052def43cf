from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any

import pandas as pd
from pydantic import BaseModel


def json_serializer(obj: Any):
    """Safe JSON serializer for pydantic models, pandas, datetime, decimal and enums."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Type {type(obj)} not serializable")
