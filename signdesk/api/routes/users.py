from fastapi import APIRouter, Depends

from signdesk.api.deps import get_current_active_user
from signdesk.models.user import User
from signdesk.schemas.user import UserRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_active_user)) -> UserRead:
    return UserRead.model_validate(current_user, from_attributes=True)
