"""Order import from the spreadsheets the merchandisers already keep.

The sheet needs ``color``, ``size`` and ``quantity`` columns (any case, any
order, extra columns ignored); one row per order item.
"""

from zipfile import BadZipFile

import pandas as pd

from .errors import ValidationError
from .payloads import parse_order_items

REQUIRED_COLUMNS = {"color", "size", "quantity"}


def read_order_items(f) -> list:
    filename = (f.filename or "").lower()
    try:
        df = pd.read_excel(f.stream) if filename.endswith(".xlsx") else pd.read_csv(f.stream)
    except (ValueError, OSError, BadZipFile, pd.errors.ParserError) as e:
        raise ValidationError(f"could not read {f.filename}: {e}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValidationError(f"Missing columns: {', '.join(sorted(missing))}")

    df = df.dropna(how="all", subset=sorted(REQUIRED_COLUMNS))
    if df.empty:
        raise ValidationError("the sheet has no order items")
    quantities = pd.to_numeric(df["quantity"], errors="coerce")
    if quantities.isna().any() or (quantities % 1 != 0).any():
        raise ValidationError("quantity must be a whole number on every row")

    raw = [
        {
            "color": "" if pd.isna(color) else str(color).strip(),
            "size": "" if pd.isna(size) else str(size).strip(),
            "quantity": int(qty),
        }
        for color, size, qty in zip(df["color"], df["size"], quantities)
    ]
    return parse_order_items(raw)
