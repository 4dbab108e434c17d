"""
Cacophony API - Recording Model
Metadata for thermal video and audio recordings uploaded by devices
"""
import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Float, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from cacophony_api.database import Base, UTCDateTime, utcnow


class RecordingType(str, enum.Enum):
    THERMAL_RAW = "thermalRaw"
    AUDIO = "audio"


class Recording(Base):
    """
    Recording metadata.

    The media file itself lives in external object storage; ``file_key``
    is its opaque key there.

    Attributes:
        device_id: Device that made the recording
        group_id: Group of the device at upload time
        station_id: Nearest active station of that group, if any is in range
        recording_date_time: When the device started recording
        lat/lng: Where the device was, when known
    """
    __tablename__ = "recordings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[RecordingType] = mapped_column(Enum(RecordingType), nullable=False)
    recording_date_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    file_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    additional_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    device_id: Mapped[int] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    group_id: Mapped[int] = mapped_column(ForeignKey("groups.id"), nullable=False, index=True)
    station_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    __table_args__ = (
        Index('ix_recordings_group_date_time', 'group_id', 'recording_date_time'),
    )

    def __repr__(self) -> str:
        return f"<Recording(id={self.id}, device_id={self.device_id}, type={self.type})>"

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None
