"""
Cacophony API - Event Model
Timestamped device events and their shared detail snapshots
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON  # Compatible with PostgreSQL and SQLite

from cacophony_api.database import Base, UTCDateTime, utcnow


class DetailSnapshot(Base):
    """
    Event type plus its details payload.

    Many events share one snapshot: devices report the same kind of event
    (e.g. ``audioBait`` with the same sound file) over and over.
    """
    __tablename__ = "detail_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    def __repr__(self) -> str:
        return f"<DetailSnapshot(id={self.id}, type={self.type})>"


class Event(Base):
    """
    Event model for something a device reported at a point in time.

    Attributes:
        id: Auto-increment primary key
        date_time: When the event happened on the device
        device_id: Device that reported it
        event_detail_id: Shared DetailSnapshot with the type and details
        created_at: When this record was created in our DB
    """
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    device_id: Mapped[int] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    event_detail_id: Mapped[int] = mapped_column(
        ForeignKey("detail_snapshots.id"),
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    event_detail: Mapped[DetailSnapshot] = relationship("DetailSnapshot", lazy="joined")

    __table_args__ = (
        Index('ix_events_device_date_time', 'device_id', 'date_time'),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, device_id={self.device_id}, date_time={self.date_time})>"
