"""
Shared fixtures for service tests: a private in-memory database per test.
"""
import unittest
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, build_engine, build_session_factory
from models import Document, User
from services import profiles


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = build_engine("sqlite+aiosqlite://")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = build_session_factory(self.engine)
        self.session = self.session_factory()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def make_user(
        self,
        subject: str,
        display_name: Optional[str] = None,
        credits: Optional[float] = None,
        allow_assessments: bool = True,
    ) -> User:
        user = await profiles.provision_user(
            self.session, subject, f"{subject}@example.com", display_name or subject.title()
        )
        profile = await profiles.get_profile_for_user(self.session, user.id)
        if credits is not None:
            profile.credits = credits
        profile.allow_assessments = allow_assessments
        await self.session.flush()
        return user

    async def add_document(self, user: User, category: str, filename: Optional[str] = None, minutes_ago: int = 0) -> Document:
        doc = Document(
            id=f"doc-{uuid.uuid4().hex[:12]}",
            user_id=user.id,
            filename=filename or f"{category.lower().replace(' ', '_')}.jpg",
            category=category,
            uploaded_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
            is_deleted=False,
        )
        self.session.add(doc)
        await self.session.flush()
        return doc


def chat_completion(content):
    """Stand-in for the SDK chat completion object; only choices[0].message.content is read."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")]
    )


def mock_chat_client(create):
    client = MagicMock()
    client.chat.completions.create = create
    client.close = AsyncMock()
    return client
