"""
Cacophony API - User Model
Accounts, credentials and the global permission level
"""
import enum
from typing import List, TYPE_CHECKING
from sqlalchemy import Column, Integer, String, Enum
from sqlalchemy.orm import relationship, Mapped

from cacophony_api.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cacophony_api.models.group import GroupUsers
    from cacophony_api.models.device import DeviceUsers


class GlobalPermission(str, enum.Enum):
    """
    System-wide permission level.

    - off: only what group/device associations grant
    - read: can see every group, device, event and recording
    - write: read, plus may manage any group or device
    """
    OFF = "off"
    READ = "read"
    WRITE = "write"


class User(Base):
    """
    User model for authentication and authorization.

    Users reach groups and devices through the GroupUsers and DeviceUsers
    association rows; the ``admin`` flag on those rows lets them manage
    membership of that group or device.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    hashed_password = Column(String(255), nullable=False)
    global_permission = Column(Enum(GlobalPermission), default=GlobalPermission.OFF, nullable=False)

    created_at = Column(UTCDateTime(), default=utcnow)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow)

    group_links: Mapped[List["GroupUsers"]] = relationship(
        "GroupUsers",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    device_links: Mapped[List["DeviceUsers"]] = relationship(
        "DeviceUsers",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(username='{self.username}', global_permission='{self.global_permission}')>"
