"""User and friendship repository."""

from typing import Any

from attrs import define
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from soundstats.domain.entities import User
from soundstats.infrastructure.persistence.database.db_models import DBFriend, DBUser
from soundstats.infrastructure.persistence.repositories.base_repo import (
    BaseModelMapper,
    BaseRepository,
)
from soundstats.infrastructure.persistence.repositories.repo_decorator import (
    db_operation,
)

FRIEND_ACCEPTED = "accepted"


@define(frozen=True, slots=True)
class UserMapper(BaseModelMapper[DBUser, User]):
    """Maps between DBUser and User domain models."""

    @staticmethod
    def to_domain(db_model: DBUser) -> User:
        return User(
            id=db_model.id,
            spotify_id=db_model.spotify_id,
            premium_user=db_model.premium_user,
            enabled=db_model.enabled,
        )

    @staticmethod
    def to_row(domain_model: User) -> dict[str, Any]:
        return {
            "id": domain_model.id,
            "spotify_id": domain_model.spotify_id,
            "premium_user": domain_model.premium_user,
            "enabled": domain_model.enabled,
        }


class UserRepository(BaseRepository[DBUser, User]):
    """Repository for tracked users and their social group."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model_class=DBUser, mapper=UserMapper())

    @db_operation("get_users_to_poll")
    async def get_users_to_poll(self, premium_only: bool = False) -> list[User]:
        """Enabled users, optionally restricted to premium users."""
        conditions = [DBUser.enabled.is_(True)]
        if premium_only:
            conditions.append(DBUser.premium_user.is_(True))
        return await self._find_by(conditions, order_by=[DBUser.id])

    @db_operation("get_friend_ids")
    async def get_friend_ids(self, user_id: str) -> list[str]:
        """IDs of users on accepted friendship rows owned by `user_id`."""
        result = await self.session.scalars(
            select(DBFriend.friend_id)
            .where(DBFriend.user_id == user_id, DBFriend.status == FRIEND_ACCEPTED)
            .order_by(DBFriend.friend_id)
        )
        return list(result.all())

    @db_operation("get_social_group")
    async def get_social_group(self, user_id: str) -> list[str]:
        """The user followed by their accepted friends, without duplicates."""
        friend_ids = await self.get_friend_ids(user_id)
        return [user_id, *(f for f in friend_ids if f != user_id)]
