"""
User model for VA Dashboard.
"""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from passlib.context import CryptContext
from datetime import datetime

from .base import BaseModel


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class User(BaseModel):
    """Staff user who signs in to the dashboard."""

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)

    memberships = relationship(
        "TenantUser",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic"
    )

    def __repr__(self):
        return f"<User(email={self.email})>"

    def check_password(self, password: str) -> bool:
        """
        Check if provided password matches the hashed password.

        Args:
            password: Plain text password to check

        Returns:
            bool: True if password matches, False otherwise
        """
        return pwd_context.verify(password, self.hashed_password)

    def set_password(self, password: str) -> None:
        """
        Set password for the user.

        Args:
            password: Plain text password to hash and store
        """
        self.hashed_password = pwd_context.hash(password)

    def record_login(self) -> None:
        """Record successful login."""
        self.last_login = datetime.utcnow()
