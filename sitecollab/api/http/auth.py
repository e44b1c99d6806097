from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sitecollab.core.db import get_db
from sitecollab.core.security import TokenService
from sitecollab.db.repositories.user_repository import UserRepository
from sitecollab.domains.identity.entities import User
from sitecollab.domains.identity.schemas import (
    LoginResponse,
    MessageResponse,
    PasswordRecoveryRequest,
    PasswordRecoveryResponse,
    PasswordReset,
    UserCreate,
    UserLogin,
    UserResponse,
)
from sitecollab.domains.identity.services import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])
security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_identity_service(
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> IdentityService:
    return IdentityService(db, token_service)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    token_service: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Зависимость для получения текущего пользователя"""
    claims = token_service.verify_token(credentials.credentials) if credentials else None

    user = None
    if claims:
        user = await UserRepository(db).get_by_id(claims.user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def to_user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.display_name)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Регистрация нового пользователя"""
    user = await identity_service.register_user(user_data)
    return to_user_response(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: UserLogin,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Вход пользователя"""
    result = await identity_service.login_user(login_data)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user, token = result
    return LoginResponse(id=user.id, name=user.display_name, token=token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Получение информации о текущем пользователе"""
    return to_user_response(current_user)


@router.post("/recover", response_model=PasswordRecoveryResponse)
async def recover_password(
    recovery_data: PasswordRecoveryRequest,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Запрос токена восстановления пароля"""
    token = await identity_service.request_password_reset(recovery_data.email)
    return PasswordRecoveryResponse(message="Recovery token generated", token=token)


@router.post("/reset", response_model=MessageResponse)
async def reset_password(
    reset_data: PasswordReset,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Смена пароля по токену восстановления"""
    await identity_service.reset_password(reset_data)
    return MessageResponse(message="Password reset successful")
