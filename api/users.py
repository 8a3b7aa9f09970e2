from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from database import get_db
from models import User
from schemas.user import CreditsAdd, ProfileUpdate, UserProvision
from services import profiles

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", status_code=201)
async def provision_user(body: UserProvision, db: AsyncSession = Depends(get_db)):
    """Called once per sign-in by the auth gateway; idempotent by subject."""
    user = await profiles.provision_user(
        db,
        subject=body.subject,
        email=body.email,
        display_name=body.display_name,
        avatar_url=body.avatar_url,
    )
    return await profiles.get_profile_overview(db, user)


@router.get("/me")
async def get_me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await profiles.get_profile_overview(db, user)


@router.patch("/me")
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await profiles.update_profile(
        db, user, display_name=body.display_name, role=body.role, allow_assessments=body.allow_assessments
    )
    return await profiles.get_profile_overview(db, user)


@router.get("/me/credits")
async def get_credits(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"credits": await profiles.get_credits(db, user)}


@router.post("/me/credits")
async def add_credits(
    body: CreditsAdd,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"credits": await profiles.add_credits(db, user, body.amount)}
