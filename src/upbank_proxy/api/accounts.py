from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from upbank_proxy.clients.up_client import UpBankClient
from upbank_proxy.errors import UpBankProxyError
from upbank_proxy.logging_config import get_logger
from upbank_proxy.schemas import AccountsOut, ErrorOut
from .deps import get_up_client

logger = get_logger("upbank_proxy.api.accounts")

router = APIRouter(tags=["accounts"])


@router.get(
    "/accounts",
    response_model=AccountsOut,
    responses={500: {"model": ErrorOut}},
)
async def get_accounts(client: UpBankClient = Depends(get_up_client)):
    """
    Proxy every account the token can see, as returned by Up.
    """
    try:
        accounts = await client.fetch_accounts()
    except UpBankProxyError as e:
        logger.error("Failed to fetch accounts: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch accounts"})
    return AccountsOut(data=accounts)
