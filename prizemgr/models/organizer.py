from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from .base import Base
from .id_type import ID_TYPE


class Organizer(Base):
    """Tournament organizer account. ``role="master"`` may act on any tournament."""

    __tablename__ = "organizers"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="organizer")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("role IN ('organizer','master')", name="role_enum"),
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        normalized = (value or "").strip().lower()
        if not normalized:
            raise ValueError("email must not be empty")
        return normalized

    @property
    def is_master(self) -> bool:
        return self.role == "master"

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["Organizer"]:
        """Get organizer by their email address."""
        return session.scalar(select(cls).where(cls.email == email.strip().lower()))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Organizer(id={self.id}, email='{self.email}', role='{self.role}')>"
