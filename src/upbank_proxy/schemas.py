from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

UNCATEGORIZED = "Uncategorized"


class FlatTransaction(BaseModel):
    """
    One transaction flattened into a single row for Tableau.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    created_at: str = Field(..., alias="createdAt")
    description: str
    amount: Decimal
    currency: str
    category: str = UNCATEGORIZED

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount)


class TransactionsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fetched_at: datetime = Field(..., alias="fetchedAt")
    count: int
    data: List[FlatTransaction]


class AccountsOut(BaseModel):
    data: List[Dict[str, Any]]


class CacheStatus(BaseModel):
    fetched_at: Optional[datetime] = None
    fresh: bool = False
    rows: int = 0


class HealthOut(BaseModel):
    status: str
    data_source: str
    cache: CacheStatus


class ErrorOut(BaseModel):
    error: str
