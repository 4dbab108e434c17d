"""
Cacophony API - Device Model
Recording devices and their direct user associations
"""
from datetime import datetime
from typing import List, TYPE_CHECKING
from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cacophony_api.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cacophony_api.models.group import Group
    from cacophony_api.models.user import User


class Device(Base):
    """
    A field device (thermal camera or audio recorder).

    Attributes:
        id: Stable identifier; survives re-registration
        devicename: Unique across all devices, may change on re-registration
        group_id: The one group the device belongs to
        hashed_password: Device credential
    """
    __tablename__ = "devices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    devicename: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id"),
        nullable=False,
        index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, onupdate=utcnow)

    group: Mapped["Group"] = relationship("Group", back_populates="devices", lazy="joined")
    user_links: Mapped[List["DeviceUsers"]] = relationship(
        "DeviceUsers",
        back_populates="device",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Device(id={self.id}, devicename='{self.devicename}', group_id={self.group_id})>"


class DeviceUsers(Base):
    """Direct access of a user to a single device, outside of its group."""
    __tablename__ = "device_users"

    device_id: Mapped[int] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    device: Mapped["Device"] = relationship("Device", back_populates="user_links")
    user: Mapped["User"] = relationship("User", back_populates="device_links")

    def __repr__(self) -> str:
        return f"<DeviceUsers(device_id={self.device_id}, user_id={self.user_id}, admin={self.admin})>"
