import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from sitecollab.core.security import TokenClaims, TokenService
from sitecollab.db.repositories.user_repository import UserRepository
from sitecollab.domains.identity.entities import User
from sitecollab.domains.identity.schemas import PasswordReset, UserCreate, UserLogin, UserUpdate

logger = logging.getLogger(__name__)


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""

    def __init__(self, session: AsyncSession, token_service: TokenService):
        self.session = session
        self.token_service = token_service
        self.user_repository = UserRepository(session)

    async def register_user(self, user_data: UserCreate) -> User:
        """Регистрация нового пользователя"""
        if await self.user_repository.email_exists(user_data.email):
            raise ConflictError("Email already in use")

        user = User.create_user(
            email=user_data.email,
            display_name=user_data.name,
            password=user_data.password,
        )
        user = await self.user_repository.create(user)
        logger.info("User registered", extra={"user_id": user.id})
        return user

    async def authenticate_user(self, login_data: UserLogin) -> Optional[User]:
        """Аутентификация пользователя"""
        user = await self.user_repository.get_by_email(login_data.email)

        if not user or not user.authenticate(login_data.password):
            return None

        return user

    async def login_user(self, login_data: UserLogin) -> Optional[Tuple[User, str]]:
        """Вход пользователя и создание JWT токена"""
        user = await self.authenticate_user(login_data)

        if not user:
            return None

        token = self.token_service.create_access_token(self.claims_for(user))
        return user, token

    async def get_user(self, user_id: str) -> User:
        user = await self.user_repository.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, update_data: UserUpdate) -> User:
        """Обновление профиля пользователя"""
        user = await self.get_user(user_id)
        if update_data.name:
            user.rename(update_data.name)
        return await self.user_repository.update(user)

    async def request_password_reset(self, email: str) -> str:
        """Выдача токена восстановления пароля.

        Токен возвращается вызывающему; доставка по почте не выполняется.
        """
        user = await self.user_repository.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        token = user.issue_password_reset()
        await self.user_repository.update(user)
        logger.info("Password reset token issued", extra={"user_id": user.id})
        return token

    async def reset_password(self, reset_data: PasswordReset) -> User:
        """Смена пароля по действующему токену восстановления"""
        user = await self.user_repository.get_by_reset_token(reset_data.token)
        if not user or not user.password_reset_valid():
            raise ValidationFailed("Invalid or expired token")

        user.reset_password(reset_data.password)
        user = await self.user_repository.update(user)
        logger.info("Password reset completed", extra={"user_id": user.id})
        return user

    @staticmethod
    def claims_for(user: User) -> TokenClaims:
        return TokenClaims(user_id=user.id, email=user.email, name=user.display_name)
