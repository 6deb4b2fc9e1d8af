# agenda/core/users/models.py
from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.base import Base
from agenda.db.types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True, comment="User ID issued by the identity provider")
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True, comment="User email")
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, comment="User display name")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id!r}>"
