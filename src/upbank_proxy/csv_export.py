"""
CSV rendering of flattened transactions.
"""

import csv
import io
from typing import Iterable

from upbank_proxy.schemas import FlatTransaction

CSV_COLUMNS = ["id", "createdAt", "description", "amount", "currency", "category"]


def to_csv(rows: Iterable[FlatTransaction]) -> str:
    """
    Header plus one RFC 4180 line per row. Fields holding commas, quotes or
    newlines are quoted; amounts keep their exact decimal text.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    for row in rows:
        writer.writerow(
            [
                row.id,
                row.created_at,
                row.description,
                str(row.amount),
                row.currency,
                row.category,
            ]
        )
    return buffer.getvalue()
