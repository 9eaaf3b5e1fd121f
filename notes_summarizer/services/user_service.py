"""
Notes Summarizer - User Store
===============================

Upserts user profiles after a provider token has been verified.

Matching order:
    1. (provider, provider_id), the same account signing in again
    2. email, the same person signing in with a different provider
    3. otherwise a new row
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from notes_summarizer.database import Database
from notes_summarizer.exceptions import DatabaseError
from notes_summarizer.models.summary import utcnow
from notes_summarizer.models.user import User
from notes_summarizer.services.auth_service import ProviderProfile

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, database: Database):
        self.database = database

    async def upsert(self, profile: ProviderProfile) -> User:
        try:
            async with self.database.session() as session:
                user = await session.scalar(
                    select(User).where(
                        User.provider == profile.provider,
                        User.provider_id == profile.provider_id,
                    )
                )
                if user is None and profile.email:
                    user = await session.scalar(
                        select(User).where(User.email == profile.email).limit(1)
                    )

                if user is None:
                    user = User(
                        email=profile.email,
                        name=profile.name,
                        picture=profile.picture,
                        provider=profile.provider,
                        provider_id=profile.provider_id,
                    )
                    session.add(user)
                    logger.info("Created user for %s sign-in", profile.provider)
                else:
                    # Latest provider wins; keep existing values the provider omitted.
                    user.provider = profile.provider
                    user.provider_id = profile.provider_id
                    user.email = profile.email or user.email
                    user.name = profile.name or user.name
                    user.picture = profile.picture or user.picture
                    user.last_login = utcnow()
                await session.flush()
        except SQLAlchemyError as e:
            logger.error("User upsert failed: %s", e)
            raise DatabaseError(context={"operation": "user_upsert"}) from e
        return user
