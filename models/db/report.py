from datetime import datetime
from uuid import uuid4

from sqlalchemy import Double, Enum, Index, Unicode, UnicodeText
from sqlalchemy.orm import Mapped, mapped_column

from models.db.base import Base
from models.db.utc_datetime import UTCDateTime, utcnow
from models.species import Species


class ReportRow(Base):
    __tablename__ = 'report'

    id: Mapped[str] = mapped_column(
        Unicode(36),
        init=False,
        nullable=False,
        primary_key=True,
        insert_default=lambda: str(uuid4()),
    )
    captured_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        init=False,
        nullable=False,
        insert_default=utcnow,
    )

    latitude: Mapped[float] = mapped_column(Double, nullable=False)
    longitude: Mapped[float] = mapped_column(Double, nullable=False)

    street: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    city: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    region: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)

    comment: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)
    contact: Mapped[str | None] = mapped_column(UnicodeText, nullable=True)

    photo_key: Mapped[str] = mapped_column(Unicode(64), nullable=False)
    species: Mapped[Species] = mapped_column(
        Enum(Species, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    breed: Mapped[str] = mapped_column(UnicodeText, nullable=False)

    user_id: Mapped[str | None] = mapped_column(Unicode(255), nullable=True)

    __table_args__ = (
        Index('report_captured_at_idx', captured_at),
        Index('report_species_idx', species),
        Index('report_user_id_idx', user_id),
    )
