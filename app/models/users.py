import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    """Model for users table
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "public_address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        "nonce": "kL3xY9pQ2mN8vB4wZ",
        "username": "user-0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        "created_at": "2024-01-01T12:00:00",
        "updated_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    public_address = Column(String(42), nullable=False, unique=True, index=True)
    nonce = Column(Text, nullable=False)
    username = Column(Text, nullable=False, unique=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
