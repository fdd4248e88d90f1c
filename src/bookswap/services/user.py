"""User service - registration, login, accounts and profiles.

The user list is cached under ``users:list``; account writes bump it.
"""

import structlog
from pydantic import TypeAdapter
from sqlalchemy.exc import IntegrityError

from bookswap.config import Settings, get_settings
from bookswap.core.exceptions import (
    DuplicateEmailError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from bookswap.core.security import create_access_token, hash_password, verify_password
from bookswap.models.exchange import Exchange, ExchangeStatus
from bookswap.models.user import User
from bookswap.repositories.exchange import ExchangeRepository
from bookswap.repositories.user import UserRepository
from bookswap.schemas.common import clamp_limit, clamp_offset
from bookswap.schemas.users import (
    TokenResponse,
    UserCreate,
    UserProfile,
    UserRead,
    UserUpdate,
)
from bookswap.services.cache import USERS_LIST, VersionedCache

logger = structlog.get_logger(__name__)

USER_LIST_ADAPTER = TypeAdapter(list[UserRead])


class UserService:
    """Service for marketplace users.

    Usage:
        ```python
        service = UserService(user_repo, exchange_repo, cache)
        token = await service.register(UserCreate(...))
        profile = await service.get_profile(token.user_id)
        ```
    """

    def __init__(
        self,
        user_repo: UserRepository,
        exchange_repo: ExchangeRepository,
        cache: VersionedCache,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            user_repo: Repository for User entities
            exchange_repo: Repository for Exchange entities (profile counters)
            cache: Version-tagged read cache
            settings: Application settings (token signing, cache TTLs)
        """
        self.user_repo = user_repo
        self.exchange_repo = exchange_repo
        self.cache = cache
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def register(self, data: UserCreate) -> TokenResponse:
        """Create an account and issue its first access token.

        Raises:
            DuplicateEmailError: If the email belongs to an account, deleted
                accounts included
        """
        email = data.email.lower()
        if await self.user_repo.get_by_email(email, include_deleted=True) is not None:
            raise DuplicateEmailError(details={"email": email})

        try:
            user = await self.user_repo.create(
                User(
                    name=data.name,
                    email=email,
                    password_hash=hash_password(data.password),
                    city=data.city,
                    address=data.address,
                )
            )
            await self.user_repo.commit()
        except IntegrityError as e:
            await self.user_repo.rollback()
            raise DuplicateEmailError(details={"email": email}) from e
        await self.cache.bump(USERS_LIST)

        logger.info("user_registered", user_id=user.id)
        return self._issue_token(user)

    async def login(self, email: str, password: str) -> TokenResponse:
        """Check credentials and issue an access token.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        user = await self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("login_failed", email=email)
            raise InvalidCredentialsError()

        logger.info("user_logged_in", user_id=user.id)
        return self._issue_token(user)

    def _issue_token(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(user.id, self.settings),
            user_id=user.id,
        )

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User:
        """Get an active user.

        Raises:
            UserNotFoundError: If the user does not exist or was deleted
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def list_users(
        self,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[UserRead]:
        """Get a page of users, newest first, through the cache."""
        limit = clamp_limit(limit)
        offset = clamp_offset(offset)

        async def load() -> list[UserRead]:
            users = await self.user_repo.get_all(offset=offset, limit=limit)
            return [UserRead.model_validate(user) for user in users]

        return await self.cache.fetch(
            USERS_LIST,
            VersionedCache.list_signature(limit, offset),
            load,
            USER_LIST_ADAPTER,
            self.settings.cache_list_ttl_seconds,
        )

    async def update_user(self, user_id: int, data: UserUpdate) -> User:
        """Edit an account. Omitted fields stay unchanged.

        Raises:
            UserNotFoundError: If the user does not exist
            DuplicateEmailError: If the new email belongs to another user
        """
        user = await self.get_user(user_id)

        if data.email is not None:
            email = data.email.lower()
            if email != user.email:
                other = await self.user_repo.get_by_email(email, include_deleted=True)
                if other is not None and other.id != user_id:
                    raise DuplicateEmailError(details={"email": email})
                user.email = email

        for field in ("name", "city", "address"):
            value = getattr(data, field)
            if value is not None:
                setattr(user, field, value)

        if data.password is not None:
            user.password_hash = hash_password(data.password)

        try:
            user = await self.user_repo.update(user)
            await self.user_repo.commit()
        except IntegrityError as e:
            await self.user_repo.rollback()
            raise DuplicateEmailError(details={"email": data.email}) from e
        await self.cache.bump(USERS_LIST)

        logger.info("user_updated", user_id=user_id)
        return user

    async def delete_user(self, user_id: int) -> None:
        """Soft delete an account.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self.get_user(user_id)
        await self.user_repo.soft_delete(user)
        await self.user_repo.commit()
        await self.cache.bump(USERS_LIST)

        logger.info("user_deleted", user_id=user_id)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_profile(self, user_id: int) -> UserProfile:
        """Public profile with listed book and completed exchange counts.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self.get_user(user_id)
        return UserProfile(
            id=user.id,
            name=user.name,
            city=user.city,
            books_count=await self.user_repo.count_books(user_id),
            completed_exchanges=await self.exchange_repo.count_completed_for_user(
                user_id
            ),
        )

    async def get_user_exchanges(
        self,
        user_id: int,
        status: ExchangeStatus | None = None,
    ) -> list[Exchange]:
        """Exchanges the user takes part in, newest first.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        await self.get_user(user_id)
        return await self.exchange_repo.list_for_user(
            user_id,
            status=status.value if status else None,
        )
