"""
On-chain publish and funding of loan requests.

The client submits the transaction from the user's wallet and hands us the hash;
the local row is only updated once the transaction has succeeded and has
settings.tx_confirmations confirmations.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted, Web3Exception

from config import settings
from models import LoanRequest, User
from services.errors import Conflict, UpstreamAnalysisFailure, UpstreamNotConfigured
from services.loan_requests import get_owned_loan_request, get_visible_loan_request

logger = logging.getLogger(__name__)


def get_web3() -> AsyncWeb3:
    if not settings.rpc_url:
        raise UpstreamNotConfigured("RPC_URL is not configured")
    return AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))


async def wait_for_confirmations(
    tx_hash: str,
    confirmations: Optional[int] = None,
    w3: Optional[AsyncWeb3] = None,
) -> dict[str, Any]:
    """Block until tx_hash is mined, succeeded and has enough confirmations. Returns the receipt."""
    w3 = w3 or get_web3()
    needed = confirmations or settings.tx_confirmations
    deadline = time.monotonic() + settings.tx_timeout_seconds

    try:
        receipt = await w3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=settings.tx_timeout_seconds,
            poll_latency=settings.tx_poll_interval_seconds,
        )
    except TimeExhausted as e:
        raise UpstreamAnalysisFailure(f"Transaction {tx_hash} was not mined in time") from e
    except Web3Exception as e:
        raise UpstreamAnalysisFailure(f"RPC error while waiting for {tx_hash}: {e}") from e

    if receipt["status"] != 1:
        raise UpstreamAnalysisFailure(f"Transaction {tx_hash} reverted")

    mined_in = receipt["blockNumber"]
    while True:
        head = await w3.eth.block_number
        if head - mined_in + 1 >= needed:
            break
        if time.monotonic() >= deadline:
            raise UpstreamAnalysisFailure(f"Transaction {tx_hash} did not reach {needed} confirmations")
        await asyncio.sleep(settings.tx_poll_interval_seconds)

    logger.info("Transaction %s confirmed in block %s", tx_hash, mined_in)
    return dict(receipt)


async def publish_on_chain(
    session: AsyncSession,
    user: User,
    short_id: str,
    tx_hash: str,
    w3: Optional[AsyncWeb3] = None,
) -> LoanRequest:
    lr = await get_owned_loan_request(session, user, short_id)
    if lr.is_funded:
        raise Conflict("Loan request is already funded")
    await wait_for_confirmations(tx_hash, w3=w3)
    lr.blockchain_tx_hash = tx_hash
    lr.is_on_chain = True
    lr.status = "active"
    lr.is_published = True
    await session.flush()
    logger.info("Loan request %s published on chain", lr.short_id)
    return lr


async def fund_loan_request(
    session: AsyncSession,
    lender: User,
    short_id: str,
    tx_hash: str,
    funded_by: str,
    w3: Optional[AsyncWeb3] = None,
) -> LoanRequest:
    lr = await get_visible_loan_request(session, lender, short_id)
    if lr.is_funded:
        raise Conflict("Loan request is already funded")
    await wait_for_confirmations(tx_hash, w3=w3)
    lr.is_funded = True
    lr.funded_by = funded_by
    lr.funding_tx_hash = tx_hash
    lr.status = "funded"
    await session.flush()
    logger.info("Loan request %s funded by %s", lr.short_id, funded_by)
    return lr
