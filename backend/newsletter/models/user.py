"""
Newsletter Backend: User Model
==============================

What:  Publishers allowed to send newsletter issues and log in.
How:   Passwords are stored as Argon2id PHC strings (see services/auth_service.py);
       the plain password never reaches the database.
"""

import uuid

from sqlalchemy import Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from newsletter.database import Base


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        # password_hash intentionally omitted
        return f"<User(user_id={self.user_id}, username='{self.username}')>"
