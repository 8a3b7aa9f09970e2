from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from config import settings
from database import get_db
from models import User
from schemas.loan_request import ChainTransaction, FundingTransaction, LoanRequestCreate, LoanRequestUpdate
from services import blockchain, loan_requests
from services.loan_requests import loan_request_to_response

router = APIRouter(prefix="/api/loan-requests", tags=["loan-requests"])


@router.post("", status_code=201)
async def create_loan_request(
    body: LoanRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lr = await loan_requests.create_loan_request(
        db,
        user,
        amount=body.amount,
        duration=body.duration,
        purpose=body.purpose,
        note=body.note,
        allow_assessments=body.allow_assessments,
        payout_wallet_id=body.payout_wallet,
    )
    return loan_request_to_response(lr)


@router.get("")
async def list_my_loan_requests(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await loan_requests.list_my_loan_requests(db, user)


@router.get("/chain-config")
async def chain_config():
    """Values the client needs to build publish and funding transactions."""
    return {
        "contractAddress": settings.loan_contract_address,
        "confirmations": settings.tx_confirmations,
        "usdToEthRate": settings.usd_to_eth_rate,
    }


@router.get("/marketplace")
async def list_marketplace(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await loan_requests.list_public_loan_requests(db, user)


@router.get("/marketplace/{short_id}")
async def get_marketplace_request(
    short_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await loan_requests.get_public_loan_request(db, user, short_id)


@router.post("/marketplace/{short_id}/fund")
async def fund_loan_request(
    short_id: str,
    body: FundingTransaction,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lr = await blockchain.fund_loan_request(db, user, short_id, body.tx_hash, body.funded_by)
    return loan_request_to_response(lr)


@router.get("/{short_id}")
async def get_loan_request(
    short_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await loan_requests.get_own_loan_request(db, user, short_id)


@router.patch("/{short_id}")
async def update_loan_request(
    short_id: str,
    body: LoanRequestUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if "payout_wallet" in changes:
        changes["payout_wallet_id"] = changes.pop("payout_wallet")
    lr = await loan_requests.update_loan_request(db, user, short_id, changes)
    return loan_request_to_response(lr)


@router.post("/{short_id}/publish")
async def publish_loan_request(
    short_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return loan_request_to_response(await loan_requests.publish_loan_request(db, user, short_id))


@router.post("/{short_id}/pause")
async def pause_loan_request(
    short_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return loan_request_to_response(await loan_requests.pause_loan_request(db, user, short_id))


@router.post("/{short_id}/publish-onchain")
async def publish_on_chain(
    short_id: str,
    body: ChainTransaction,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lr = await blockchain.publish_on_chain(db, user, short_id, body.tx_hash)
    return loan_request_to_response(lr)
