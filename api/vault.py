from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from database import get_db
from models import User
from schemas.vault import VaultOperation
from services import vault
from services.errors import NotFound

router = APIRouter(prefix="/api", tags=["vault"])


@router.get("/keypair")
async def get_keypair(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    kp = await vault.get_keypair(db, user)
    if not kp:
        raise NotFound("Keypair not found")
    return vault.keypair_to_response(kp)


@router.post("/keypair")
async def create_keypair(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return vault.keypair_to_response(await vault.get_or_create_keypair(db, user))


@router.post("/vault")
async def vault_operation(
    body: VaultOperation,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await vault.vault_operation(
        db, user, body.action, body.document_id, body.raw_output, body.base64_image
    )
