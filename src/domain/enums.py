from enum import Enum
from typing import Optional


class FlatType(str, Enum):
    TWO_ROOM = "2-Room"
    THREE_ROOM = "3-Room"

    @property
    def rooms(self) -> int:
        return int(self.value.split("-", 1)[0])

    @classmethod
    def smallest(cls) -> "FlatType":
        return min(cls, key=lambda flat_type: flat_type.rooms)

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["FlatType"]:
        """Match a display name ("2-Room") or member name ("TWO_ROOM"), ignoring case"""
        if raw is None:
            return None
        normalized = raw.strip().lower()
        for flat_type in cls:
            if normalized in (flat_type.value.lower(), flat_type.name.lower()):
                return flat_type
        return None


class MaritalStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    UNSUCCESSFUL = "unsuccessful"
    BOOKED = "booked"


class UserRole(str, Enum):
    APPLICANT = "applicant"
    OFFICER = "officer"
    MANAGER = "manager"
