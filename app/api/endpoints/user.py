import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_user
from app.core.jwt_utils import TokenType
from app.core.session_store import SessionStore, get_session_store
from app.db.session import get_db
from app.models.users import User
from app.schemas.user import UpdateUserRequest, UserResponse
from app.services.user_profile_contract import push_username
from app.services.user_service import UserService

router = APIRouter()
group_tags: List[str] = ["user"]

logger = logging.getLogger(__name__)


@router.get(
    "/profile",
    tags=group_tags,
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
)
def get_profile(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user's current profile."""
    return UserResponse.from_record(user)


@router.put(
    "/profile",
    tags=group_tags,
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
)
def update_profile(
    body: UpdateUserRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> UserResponse:
    """
    Update the authenticated user's username.

    Body:
    - username: at least 3 characters, unique across users (409 when taken)
    """
    updated = UserService(db).update(user, username=body.username)
    logger.info("username changed for %s", updated.public_address)

    access_token = store.get(TokenType.ACCESS, updated.public_address)
    if access_token:
        background_tasks.add_task(push_username, updated.public_address, access_token, updated.username)

    return UserResponse.from_record(updated)
