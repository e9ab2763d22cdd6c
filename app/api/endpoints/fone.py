import logging
import math
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.errors import FoneError, StoreFailed, ValidationFailed
from app.db.session import get_optional_db
from app.schemas.fone import ImportWalletRequest, SendTransactionRequest
from app.services.fone_client import FoneClient, get_fone_client
from app.services.ledger import ensure_wallet

router = APIRouter()
group_tags: List[str | Enum] = ["Fone"]
logger = logging.getLogger(__name__)


"""
proxy to the Fone node, credentials stay on the backend

routes -> node paths:
    POST /wallet/create              -> POST /v1/wallet/create
    POST /wallet/import              -> POST /v1/wallet/import
    GET  /wallet/{addr}/balance      -> GET  /v1/wallet/{addr}/balance
    GET  /wallet/{addr}/transactions -> GET  /v1/wallet/{addr}/transactions
    POST /transaction/send           -> POST /v1/transaction/send

node replies are returned as-is; any node failure becomes a 500 with a
generic message, the node's own message only goes to the log
"""


def _proxy(
    fone: FoneClient,
    route: str,
    operation: str,
    path: str,
    method: str = "GET",
    body: Optional[dict] = None,
) -> Any:
    try:
        return fone.call(path, method, body)
    except FoneError as e:
        logger.error("%s %s", route, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Fone API error ({operation})",
        )


def _extract_address(data: Any) -> Optional[str]:
    """Find the wallet address in a create / import reply, if the node sent one."""
    if not isinstance(data, dict):
        return None
    for source in (data, data.get("wallet"), data.get("data")):
        if not isinstance(source, dict):
            continue
        for key in ("address", "addr"):
            value = source.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _remember_wallet(db: Optional[Session], data: Any, route: str) -> None:
    # best effort: the node already has the wallet, a local miss is repaired
    # by the first mission completion
    addr = _extract_address(data)
    if db is None or addr is None:
        return
    try:
        ensure_wallet(db, addr)
    except StoreFailed as e:
        logger.warning("%s could not register wallet locally: %s", route, e)


def _encode_addr(addr: str) -> str:
    # same escaping as encodeURIComponent
    return quote(addr, safe="!~*'()")


def _coerce_amount(value: int | float | str) -> int | float:
    number: int | float
    if isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValidationFailed("amount must be a number")
    else:
        number = value
    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationFailed("amount must be a number")
    return number


@router.post("/wallet/create", tags=group_tags)
def create_wallet(
    fone: FoneClient = Depends(get_fone_client),
    db: Optional[Session] = Depends(get_optional_db),
) -> Any:
    """Create a new wallet on the Fone node and register its address locally."""
    route = "POST /api/fone/wallet/create"
    data = _proxy(fone, route, "create wallet", "/v1/wallet/create", "POST")
    _remember_wallet(db, data, route)
    return data


@router.post("/wallet/import", tags=group_tags)
def import_wallet(
    payload: Optional[ImportWalletRequest] = None,
    fone: FoneClient = Depends(get_fone_client),
    db: Optional[Session] = Depends(get_optional_db),
) -> Any:
    """
    Import a wallet from its private key.

    The key is forwarded to the node and never stored or logged here.

    *Sample request body:*
    {
        "privateKey": "0x4c0883a69102937d6231471b5dbb6204fe512961708279f3c4d1b0a2b3c4d5e6"
    }
    """
    private_key = payload.privateKey if payload else None
    if not private_key:
        raise ValidationFailed("privateKey required")

    route = "POST /api/fone/wallet/import"
    data = _proxy(
        fone, route, "import wallet", "/v1/wallet/import", "POST",
        {"privateKey": private_key},
    )
    _remember_wallet(db, data, route)
    return data


@router.get("/wallet/{addr}/balance", tags=group_tags)
def get_wallet_balance(addr: str, fone: FoneClient = Depends(get_fone_client)) -> Any:
    """On-chain balance from the Fone node, nothing is stored locally."""
    return _proxy(
        fone,
        "GET /api/fone/wallet/:addr/balance",
        "balance",
        f"/v1/wallet/{_encode_addr(addr)}/balance",
    )


@router.get("/wallet/{addr}/transactions", tags=group_tags)
def get_wallet_transactions(addr: str, fone: FoneClient = Depends(get_fone_client)) -> Any:
    """Transactions and wallet data from the Fone node."""
    return _proxy(
        fone,
        "GET /api/fone/wallet/:addr/transactions",
        "transactions",
        f"/v1/wallet/{_encode_addr(addr)}/transactions",
    )


@router.post("/transaction/send", tags=group_tags)
def send_transaction(
    payload: Optional[SendTransactionRequest] = None,
    fone: FoneClient = Depends(get_fone_client),
) -> Any:
    """
    Send FONE from the wallet of ``privateKey`` to ``recipient``.

    Payload:
    - privateKey, recipient, amount: required, amount may be a numeric string
    - message: optional, only forwarded when present

    Returns the node reply unchanged.
    """
    payload = payload or SendTransactionRequest()
    if not payload.privateKey or not payload.recipient or not payload.amount:
        raise ValidationFailed("privateKey, recipient and amount are required")

    body: dict = {
        "privateKey": payload.privateKey,
        "recipient": payload.recipient,
        "amount": _coerce_amount(payload.amount),
    }
    if payload.message:
        body["message"] = payload.message

    return _proxy(
        fone, "POST /api/fone/transaction/send", "send", "/v1/transaction/send", "POST", body
    )
