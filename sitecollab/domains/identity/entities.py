import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sitecollab.core.security import get_password_hash, verify_password
from sitecollab.db.base import new_id, utcnow

# Время жизни токена восстановления пароля
PASSWORD_RESET_TTL = timedelta(hours=1)


class User:
    """Сущность пользователя домена Identity"""

    def __init__(
        self,
        id: str,
        email: str,
        display_name: str,
        password_hash: str,
        password_reset_token: Optional[str] = None,
        password_reset_expiry: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.display_name = display_name
        self.password_hash = password_hash
        self.password_reset_token = password_reset_token
        self.password_reset_expiry = password_reset_expiry

    def authenticate(self, password: str) -> bool:
        """Проверка пароля пользователя"""
        return verify_password(password, self.password_hash)

    def rename(self, display_name: str) -> None:
        self.display_name = display_name

    def issue_password_reset(self) -> str:
        """Выдача нового одноразового токена восстановления"""
        self.password_reset_token = secrets.token_hex(32)
        self.password_reset_expiry = utcnow() + PASSWORD_RESET_TTL
        return self.password_reset_token

    def password_reset_valid(self, now: Optional[datetime] = None) -> bool:
        if not self.password_reset_token or self.password_reset_expiry is None:
            return False
        expiry = self.password_reset_expiry
        # SQLite возвращает наивные даты
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry > (now or utcnow())

    def reset_password(self, password: str) -> None:
        """Смена пароля по токену; токен после этого недействителен"""
        self.password_hash = get_password_hash(password)
        self.password_reset_token = None
        self.password_reset_expiry = None

    @classmethod
    def create_user(cls, email: str, display_name: str, password: str) -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            id=new_id(),
            email=email.lower(),
            display_name=display_name,
            password_hash=get_password_hash(password),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, display_name={self.display_name})"
