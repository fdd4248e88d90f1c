"""Genre model - catalog category shared by many books."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Genre(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Book genre with a unique name.

    Books reach their genres through ``Book.genres``; there is no reverse
    collection.
    """

    __tablename__ = "genres"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Genre(id={self.id}, name='{self.name}')>"
