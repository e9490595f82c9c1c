import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict
from app.models.users import User

logger = logging.getLogger(__name__)


def default_username(public_address: str) -> str:
    return f"user-{public_address}"


class UserService:
    """Identity store: users looked up by address, id or username."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_address(self, public_address: str) -> Optional[User]:
        return self.db.query(User).filter(User.public_address == public_address).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create(self, public_address: str, nonce: str, username: Optional[str] = None) -> User:
        user = User(
            public_address=public_address,
            nonce=nonce,
            username=username or default_username(public_address),
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, **fields: Any) -> User:
        for name, value in fields.items():
            setattr(user, name, value)
        self._commit()
        self.db.refresh(user)
        return user

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("user write rejected by unique constraint: %s", e.orig)
            raise Conflict("Username or address already taken") from e
