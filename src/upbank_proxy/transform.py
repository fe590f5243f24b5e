"""
Flattening of Up Bank JSON:API transaction resources into Tableau rows.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from upbank_proxy.errors import TransformError
from upbank_proxy.schemas import UNCATEGORIZED, FlatTransaction


def parse_amount(value: Any, transaction_id: Optional[str] = None) -> Decimal:
    """
    Parse the string-encoded decimal Up sends in `amount.value`.
    Anything that is not a finite number raises TransformError.
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise TransformError(f"malformed amount {value!r}", transaction_id=transaction_id) from e
    if not amount.is_finite():
        raise TransformError(f"malformed amount {value!r}", transaction_id=transaction_id)
    return amount


def _mapping(value: Any, what: str, transaction_id: Optional[str]) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TransformError(f"{what} is not an object: {value!r}", transaction_id=transaction_id)
    return value


def _category_id(raw: Dict[str, Any], transaction_id: Optional[str]) -> str:
    relationships = _mapping(raw.get("relationships"), "relationships", transaction_id)
    category = _mapping(relationships.get("category"), "category relationship", transaction_id)
    data = _mapping(category.get("data"), "category data", transaction_id)
    if data.get("id"):
        return str(data["id"])
    return UNCATEGORIZED


def flatten_transaction(raw: Dict[str, Any]) -> FlatTransaction:
    if not isinstance(raw, dict):
        raise TransformError(f"transaction is not an object: {raw!r}")
    tx_id = raw.get("id")
    attributes = _mapping(raw.get("attributes"), "attributes", tx_id)
    amount = _mapping(attributes.get("amount"), "amount", tx_id)
    if tx_id is None or "value" not in amount:
        raise TransformError("transaction is missing id or amount", transaction_id=tx_id)

    return FlatTransaction(
        id=str(tx_id),
        created_at=str(attributes.get("createdAt") or ""),
        description=str(attributes.get("description") or ""),
        amount=parse_amount(amount.get("value"), transaction_id=tx_id),
        currency=str(amount.get("currencyCode") or ""),
        category=_category_id(raw, tx_id),
    )


def flatten(rows: Iterable[Dict[str, Any]]) -> List[FlatTransaction]:
    """
    Map raw transactions to flat rows, preserving order and length. One bad
    record fails the whole batch.
    """
    return [flatten_transaction(raw) for raw in rows]
