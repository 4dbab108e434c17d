"""
Cacophony API - Station Model
Named monitoring locations belonging to a group
"""
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Float, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cacophony_api.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cacophony_api.models.group import Group


class Station(Base):
    """
    A monitoring location.

    Stations are never deleted; they are retired by setting ``retired_at``,
    which is never cleared again. Names are unique among a group's active
    stations.
    """
    __tablename__ = "stations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)
    retired_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    group: Mapped["Group"] = relationship("Group", back_populates="stations")

    __table_args__ = (
        Index("ix_stations_group_name", "group_id", "name"),
    )

    def __repr__(self) -> str:
        return f"<Station(id={self.id}, name='{self.name}', lat={self.lat}, lng={self.lng})>"

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None
