"""
Repository ports used by the allocation coordinator, plus dict-backed
implementations for tests and embedding.

Adapters raise PersistenceError when storage fails; a missing record is
signalled with None, never an exception.
"""
from typing import Optional, Protocol, Union

from ..domain.entities import Applicant, Application, Enquiry, Manager, Officer, Project
from ..domain.enums import ApplicationStatus, FlatType
from .inventory import FlatInventory, flat_inventory

User = Union[Applicant, Officer, Manager]


class ProjectRepository(Protocol):
    def get_project_by_name(self, name: str) -> Optional[Project]: ...

    def list_projects(self) -> list[Project]: ...

    def save_project(self, project: Project) -> None: ...

    def reserve_unit(self, project: Project, flat_type: FlatType) -> bool:
        """Take one unit from the stored count; False when none is left"""
        ...

    def release_unit(self, project: Project, flat_type: FlatType) -> bool:
        """Return one unit to the stored count; False when already full"""
        ...


class ApplicationRepository(Protocol):
    def get_application(self, application_id: str) -> Optional[Application]: ...

    def list_by_applicant(self, applicant_nric: str) -> list[Application]: ...

    def list_by_project(
        self,
        project_name: str,
        status: Optional[ApplicationStatus] = None,
    ) -> list[Application]: ...

    def save_application(self, application: Application) -> None: ...


class UserRepository(Protocol):
    def get_user(self, nric: str) -> Optional[User]: ...

    def get_applicant(self, nric: str) -> Optional[Applicant]: ...

    def save_applicant(self, applicant: Applicant) -> None: ...


class EnquiryRepository(Protocol):
    def get_enquiry(self, enquiry_id: str) -> Optional[Enquiry]: ...

    def list_by_applicant(self, applicant_nric: str) -> list[Enquiry]: ...

    def list_by_project(self, project_name: str) -> list[Enquiry]: ...

    def save_enquiry(self, enquiry: Enquiry) -> None: ...

    def delete_enquiry(self, enquiry_id: str) -> None: ...


class InMemoryProjectRepository:
    def __init__(
        self,
        projects: Optional[list[Project]] = None,
        inventory: Optional[FlatInventory] = None,
    ):
        self._projects: dict[str, Project] = {p.name: p for p in projects or []}
        self.inventory = inventory or flat_inventory

    def get_project_by_name(self, name: str) -> Optional[Project]:
        return self._projects.get(name)

    def list_projects(self) -> list[Project]:
        return list(self._projects.values())

    def save_project(self, project: Project) -> None:
        self._projects[project.name] = project

    def reserve_unit(self, project: Project, flat_type: FlatType) -> bool:
        return self._step(project, flat_type, self.inventory.reserve)

    def release_unit(self, project: Project, flat_type: FlatType) -> bool:
        return self._step(project, flat_type, self.inventory.release)

    def _step(self, project: Project, flat_type: FlatType, step) -> bool:
        # The stored project is the source of truth; a caller's copy follows it
        stored = self._projects.get(project.name, project)
        done = step(stored, flat_type)
        if done and stored is not project and flat_type in project.flat_types:
            project.flat_types[flat_type].remaining_units = stored.flat_types[flat_type].remaining_units
        return done


class InMemoryApplicationRepository:
    def __init__(self):
        self._applications: dict[str, Application] = {}

    def get_application(self, application_id: str) -> Optional[Application]:
        return self._applications.get(application_id)

    def list_by_applicant(self, applicant_nric: str) -> list[Application]:
        return [
            app for app in self._applications.values()
            if app.applicant_nric == applicant_nric
        ]

    def list_by_project(
        self,
        project_name: str,
        status: Optional[ApplicationStatus] = None,
    ) -> list[Application]:
        return [
            app for app in self._applications.values()
            if app.project_name == project_name and (status is None or app.status == status)
        ]

    def save_application(self, application: Application) -> None:
        self._applications[application.application_id] = application


class InMemoryUserRepository:
    def __init__(self, users: Optional[list[User]] = None):
        self._users: dict[str, User] = {u.nric: u for u in users or []}

    def add(self, user: User) -> None:
        self._users[user.nric] = user

    def get_user(self, nric: str) -> Optional[User]:
        return self._users.get(nric)

    def get_applicant(self, nric: str) -> Optional[Applicant]:
        user = self._users.get(nric)
        return user if isinstance(user, Applicant) else None

    def save_applicant(self, applicant: Applicant) -> None:
        self._users[applicant.nric] = applicant


class InMemoryEnquiryRepository:
    def __init__(self):
        self._enquiries: dict[str, Enquiry] = {}

    def get_enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        return self._enquiries.get(enquiry_id)

    def list_by_applicant(self, applicant_nric: str) -> list[Enquiry]:
        return [e for e in self._enquiries.values() if e.applicant_nric == applicant_nric]

    def list_by_project(self, project_name: str) -> list[Enquiry]:
        return [e for e in self._enquiries.values() if e.project_name == project_name]

    def save_enquiry(self, enquiry: Enquiry) -> None:
        self._enquiries[enquiry.enquiry_id] = enquiry

    def delete_enquiry(self, enquiry_id: str) -> None:
        self._enquiries.pop(enquiry_id, None)
