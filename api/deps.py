from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import User
from services.errors import NotAuthenticated, NotFound
from services.profiles import get_user_by_subject


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the identity-provider subject forwarded by the auth gateway."""
    if not x_user_id:
        raise NotAuthenticated()
    user = await get_user_by_subject(db, x_user_id)
    if not user:
        raise NotFound("User not found")
    return user
