"""
Domain entities for BTO flat applications

Plain mutable records. They hold current state only; every rule that moves
them between states lives in the services layer.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from .enums import ApplicationStatus, FlatType, MaritalStatus, UserRole


@dataclass
class Applicant:
    """Person applying for a flat, keyed by NRIC"""

    nric: str
    name: str
    age: int
    marital_status: MaritalStatus

    # Weak reference: the applicant tracks, but does not own, its application
    current_application_id: Optional[str] = None

    booked_flat_type: Optional[FlatType] = None
    booked_project: Optional[str] = None

    role = UserRole.APPLICANT

    @property
    def is_married(self) -> bool:
        return self.marital_status == MaritalStatus.MARRIED

    def has_booked_flat(self) -> bool:
        return self.booked_flat_type is not None and self.booked_project is not None

    def clear_booking(self) -> None:
        self.booked_flat_type = None
        self.booked_project = None


@dataclass
class Officer(Applicant):
    """HDB officer. Officers may also apply for projects they do not handle."""

    assigned_project: Optional[str] = None
    registration_approved: bool = False

    role = UserRole.OFFICER

    def is_assigned_to(self, project_name: str) -> bool:
        """Assigned means registered for the project and approved by its manager"""
        return self.assigned_project == project_name and self.registration_approved

    def is_registered_for(self, project_name: str) -> bool:
        """Registered for the project, approved or still pending"""
        return self.assigned_project == project_name


@dataclass
class Manager:
    nric: str
    name: str
    age: int
    marital_status: MaritalStatus

    role = UserRole.MANAGER


@dataclass
class FlatTypeInfo:
    """Inventory cell for one flat type in one project"""

    flat_type: FlatType
    total_units: int
    remaining_units: int
    price: float = 0.0

    def __post_init__(self):
        if self.total_units < 0:
            raise ValueError(f"total_units must be >= 0, got {self.total_units}")
        if not 0 <= self.remaining_units <= self.total_units:
            raise ValueError(
                f"remaining_units must be between 0 and {self.total_units}, "
                f"got {self.remaining_units}"
            )


@dataclass
class Project:
    name: str
    neighborhood: str
    opening_date: date
    closing_date: date
    manager_in_charge: str
    flat_types: dict[FlatType, FlatTypeInfo] = field(default_factory=dict)
    officers: list[str] = field(default_factory=list)
    officer_slots: int = 10
    visible: bool = True

    def offers(self, flat_type: FlatType) -> bool:
        return flat_type in self.flat_types

    def offered_flat_types(self) -> list[FlatType]:
        return list(self.flat_types)

    def is_managed_by(self, manager_nric: str) -> bool:
        return self.manager_in_charge == manager_nric

    def is_open_for_applications(self, now: datetime) -> bool:
        """Visible and today falls inside the window, both dates inclusive"""
        today = now.date()
        return self.visible and self.opening_date <= today <= self.closing_date


@dataclass
class Application:
    application_id: str
    applicant_nric: str
    project_name: str
    selected_flat_type: FlatType
    created_at: datetime
    status: ApplicationStatus = ApplicationStatus.PENDING
    withdrawal_requested: bool = False
    booked_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status != ApplicationStatus.UNSUCCESSFUL

    def __str__(self) -> str:
        return f"Application({self.application_id}, status={self.status.value})"


@dataclass
class Enquiry:
    """Question from an applicant about a project, answered by its staff"""

    enquiry_id: str
    applicant_nric: str
    project_name: str
    question: str
    created_at: datetime
    reply: Optional[str] = None
    replied_by: Optional[str] = None
    replied_at: Optional[datetime] = None

    @property
    def is_answered(self) -> bool:
        return bool(self.reply and self.reply.strip())
