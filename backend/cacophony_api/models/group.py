"""
Cacophony API - Group Model
Groups own devices and stations; users join them through GroupUsers
"""
from datetime import datetime
from typing import List, TYPE_CHECKING
from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cacophony_api.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cacophony_api.models.user import User
    from cacophony_api.models.device import Device
    from cacophony_api.models.station import Station


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    groupname: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, onupdate=utcnow)

    user_links: Mapped[List["GroupUsers"]] = relationship(
        "GroupUsers",
        back_populates="group",
        cascade="all, delete-orphan"
    )
    devices: Mapped[List["Device"]] = relationship("Device", back_populates="group")
    stations: Mapped[List["Station"]] = relationship(
        "Station",
        back_populates="group",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, groupname='{self.groupname}')>"


class GroupUsers(Base):
    """Membership of a user in a group; ``admin`` lets them manage the group."""
    __tablename__ = "group_users"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    group: Mapped["Group"] = relationship("Group", back_populates="user_links")
    user: Mapped["User"] = relationship("User", back_populates="group_links")

    def __repr__(self) -> str:
        return f"<GroupUsers(group_id={self.group_id}, user_id={self.user_id}, admin={self.admin})>"
