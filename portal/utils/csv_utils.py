"""
CSV export utilities for resource collections
"""
import io
import re
from typing import Any, Dict, List, Optional

import pandas as pd


def normalize_column_name(name: str) -> str:
    """Normalize column name for headers"""
    if not name:
        return ""
    return re.sub(r'[_\s]+', ' ', name.strip()).title()


def records_to_csv(records: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> bytes:
    """
    Convert view records to CSV bytes.

    Args:
        records: Loaded records, in display order
        columns: Columns to keep, in output order; defaults to every key

    Returns:
        UTF-8 encoded CSV with a header row (header only when there are no records)
    """
    df = pd.DataFrame(records, columns=columns)
    df = df.rename(columns={col: normalize_column_name(col) for col in df.columns})

    output = io.StringIO()
    df.to_csv(output, index=False)
    return output.getvalue().encode('utf-8')
