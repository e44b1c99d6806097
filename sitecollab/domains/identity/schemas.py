from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    """Схема для регистрации пользователя"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    """Схема для обновления профиля"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: str
    email: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    """Ответ на вход: токен доступа и краткие данные пользователя"""
    id: str
    name: str
    token: str
    token_type: str = "bearer"


class PasswordRecoveryRequest(BaseModel):
    """Запрос на восстановление пароля"""
    email: EmailStr


class PasswordRecoveryResponse(BaseModel):
    message: str
    token: str


class PasswordReset(BaseModel):
    """Смена пароля по токену восстановления"""
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class MessageResponse(BaseModel):
    message: str
