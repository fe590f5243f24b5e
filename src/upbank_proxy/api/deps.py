from fastapi import Request

from upbank_proxy.cache import TransactionCache
from upbank_proxy.clients.up_client import UpBankClient
from upbank_proxy.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_up_client(request: Request) -> UpBankClient:
    """
    Shared Up API client, opened in the app lifespan.
    """
    return request.app.state.up_client


def get_transaction_cache(request: Request) -> TransactionCache:
    return request.app.state.transaction_cache
