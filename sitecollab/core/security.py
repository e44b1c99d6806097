from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from sitecollab.config import Settings

# Контекст для хеширования паролей
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class TokenClaims:
    """Данные, зашитые в токен доступа"""
    user_id: str
    email: str
    name: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверка пароля"""
    # bcrypt имеет ограничение 72 байта
    return pwd_context.verify(plain_password[:72], hashed_password)


def get_password_hash(password: str) -> str:
    """Хеширование пароля"""
    return pwd_context.hash(password[:72])


class TokenService:
    """Выпуск и проверка подписанных bearer-токенов"""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    def create_access_token(self, claims: TokenClaims, expires_delta: Optional[timedelta] = None) -> str:
        """Создание JWT токена доступа"""
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_delta)
        to_encode: Dict[str, Any] = {
            "id": claims.user_id,
            "email": claims.email,
            "name": claims.name,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[TokenClaims]:
        """Проверка JWT токена и извлечение данных.

        Возвращает ``None`` для любого невалидного токена: подпись, срок
        действия и состав полей не различаются.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None

        user_id = payload.get("id")
        if not user_id:
            return None

        return TokenClaims(
            user_id=str(user_id),
            email=payload.get("email") or "",
            name=payload.get("name") or "",
        )


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Извлечение токена из заголовка Authorization"""
    if not authorization:
        return None

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
