from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from database import get_db
from models import User, Wallet
from schemas.wallet import HumanityScoreUpdate, WalletCreate
from services import wallets
from utils import row_to_dict

router = APIRouter(prefix="/api/wallets", tags=["wallets"])


def _wallet_to_response(w: Wallet) -> dict[str, Any]:
    return row_to_dict(w, exclude=("user_id",))


@router.get("")
async def list_wallets(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return [_wallet_to_response(w) for w in await wallets.list_wallets(db, user)]


@router.post("", status_code=201)
async def add_wallet(
    body: WalletCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _wallet_to_response(await wallets.add_wallet(db, user, body.address, body.nickname))


@router.get("/by-address/{address}")
async def get_wallet_by_address(
    address: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wallet = await wallets.get_wallet_by_address(db, user, address)
    return _wallet_to_response(wallet) if wallet else None


@router.get("/{wallet_id}")
async def get_wallet(
    wallet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _wallet_to_response(await wallets.get_wallet(db, user, wallet_id))


@router.post("/{wallet_id}/primary")
async def set_primary(
    wallet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _wallet_to_response(await wallets.set_primary(db, user, wallet_id))


@router.delete("/{wallet_id}", status_code=204)
async def remove_wallet(
    wallet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await wallets.remove_wallet(db, user, wallet_id)


@router.put("/{wallet_id}/humanity-score")
async def update_humanity_score(
    wallet_id: str,
    body: HumanityScoreUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wallet = await wallets.update_humanity_score(
        db, user, wallet_id, body.humanity_score, body.is_humanity_verified, body.last_score_update
    )
    return _wallet_to_response(wallet)


@router.post("/{wallet_id}/verify-humanity")
async def verify_humanity(
    wallet_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _wallet_to_response(await wallets.verify_wallet_humanity(db, user, wallet_id))
