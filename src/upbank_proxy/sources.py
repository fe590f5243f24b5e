"""
Where raw transactions come from.

DATA_SOURCE=live        paginated fetch from the Up API
DATA_SOURCE=local_file  pre-fetched JSON file (offline mode)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Protocol

from upbank_proxy.clients.up_client import UpBankClient
from upbank_proxy.config import DATA_SOURCE_LIVE, DATA_SOURCE_LOCAL_FILE, Settings
from upbank_proxy.errors import LocalCacheMiss
from upbank_proxy.logging_config import get_logger

logger = get_logger("upbank_proxy.sources")


class TransactionSource(Protocol):
    name: str

    async def fetch_all_transactions(self) -> List[Dict[str, Any]]:
        ...


class LiveTransactionSource:
    name = DATA_SOURCE_LIVE

    def __init__(self, client: UpBankClient):
        self.client = client

    async def fetch_all_transactions(self) -> List[Dict[str, Any]]:
        return await self.client.fetch_all_transactions()


class LocalFileTransactionSource:
    """
    Reads a JSON file holding either a list of raw transactions or an object
    with a `data` list (a saved API page). A missing or broken file is
    treated as an empty dataset.
    """

    name = DATA_SOURCE_LOCAL_FILE

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> List[Dict[str, Any]]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except FileNotFoundError as e:
            raise LocalCacheMiss(f"{self.path} not found") from e
        except (OSError, ValueError) as e:
            raise LocalCacheMiss(f"{self.path} unreadable: {e}") from e

        if isinstance(payload, dict):
            payload = payload.get("data")
        if not isinstance(payload, list):
            raise LocalCacheMiss(f"{self.path} does not contain a transaction list")
        return payload

    async def fetch_all_transactions(self) -> List[Dict[str, Any]]:
        try:
            rows = self._read()
        except LocalCacheMiss as e:
            logger.warning("Local transactions file unavailable, serving empty dataset: %s", e)
            return []
        logger.info("Loaded %d transactions from %s", len(rows), self.path)
        return rows


def build_source(settings: Settings, client: UpBankClient) -> TransactionSource:
    if settings.data_source == DATA_SOURCE_LIVE:
        return LiveTransactionSource(client)
    if settings.data_source == DATA_SOURCE_LOCAL_FILE:
        return LocalFileTransactionSource(Path(settings.local_transactions_file))
    raise ValueError(f"Unknown data source: {settings.data_source!r}")
