"""User model - a marketplace member who owns and trades books."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.models.base import (
    Base,
    IntegerPrimaryKeyMixin,
    SoftDeleteMixin,
    TimestampMixin,
)


class User(IntegerPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Registered marketplace user.

    ``created_at`` doubles as the registration timestamp.

    Attributes:
        name: Display name
        email: Unique login email, kept reserved after a soft delete
        password_hash: bcrypt hash of the password
        city: City used for local book search
        address: Free-form postal address
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
