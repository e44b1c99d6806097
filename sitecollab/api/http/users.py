from fastapi import APIRouter, Depends

from sitecollab.api.http.auth import get_current_user, get_identity_service, to_user_response
from sitecollab.domains.identity.entities import User
from sitecollab.domains.identity.schemas import UserResponse, UserUpdate
from sitecollab.domains.identity.services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return to_user_response(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Обновление отображаемого имени.

    Новое имя попадает в токен только при следующем входе; активные
    соединения продолжают использовать имя из токена рукопожатия.
    """
    user = await identity_service.update_profile(current_user.id, update_data)
    return to_user_response(user)
