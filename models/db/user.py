from datetime import datetime

from sqlalchemy import Unicode
from sqlalchemy.orm import Mapped, mapped_column

from models.db.base import Base
from models.db.utc_datetime import UTCDateTime, utcnow


class UserRow(Base):
    __tablename__ = 'user'

    id: Mapped[str] = mapped_column(Unicode(255), nullable=False, primary_key=True)
    email: Mapped[str | None] = mapped_column(Unicode(255), nullable=True, default=None)
    first_name: Mapped[str | None] = mapped_column(Unicode(255), nullable=True, default=None)
    last_name: Mapped[str | None] = mapped_column(Unicode(255), nullable=True, default=None)
    profile_image_url: Mapped[str | None] = mapped_column(Unicode(1024), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        init=False,
        nullable=False,
        insert_default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        init=False,
        nullable=False,
        insert_default=utcnow,
        onupdate=utcnow,
    )
