"""
SQLAlchemy-backed repositories

Rows are mapped to fresh domain objects on every read. Each save commits on
its own; a database error rolls the session back and surfaces as
PersistenceError.

Unit counts are never written from a domain copy during allocation. They
move through conditional UPDATEs, so two sessions holding the same stale
project cannot both take the last unit.
"""
import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import models
from ..domain.entities import (
    Applicant,
    Application,
    Enquiry,
    FlatTypeInfo,
    Manager,
    Officer,
    Project,
)
from ..domain.enums import ApplicationStatus, FlatType, MaritalStatus, UserRole
from ..domain.results import PersistenceError
from .repositories import User

logger = logging.getLogger(__name__)


@contextmanager
def _committing(db: Session, what: str, commit: bool = True):
    try:
        yield
        if commit:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database write failed for {what}: {e}")
        raise PersistenceError(f"Could not save {what}") from e


def _project_to_domain(row: models.Project) -> Project:
    return Project(
        name=row.name,
        neighborhood=row.neighborhood,
        opening_date=row.opening_date,
        closing_date=row.closing_date,
        manager_in_charge=row.manager_nric,
        flat_types={
            FlatType(ft.flat_type): FlatTypeInfo(
                flat_type=FlatType(ft.flat_type),
                total_units=ft.total_units,
                remaining_units=ft.remaining_units,
                price=ft.price,
            )
            for ft in row.flat_types
        },
        officers=list(row.officer_nrics or []),
        officer_slots=row.officer_slots,
        visible=row.visible,
    )


def _application_to_domain(row: models.Application) -> Application:
    return Application(
        application_id=row.application_id,
        applicant_nric=row.applicant_nric,
        project_name=row.project_name,
        selected_flat_type=FlatType(row.flat_type),
        created_at=row.created_at,
        status=ApplicationStatus(row.status),
        withdrawal_requested=row.withdrawal_requested,
        booked_at=row.booked_at,
    )


def _enquiry_to_domain(row: models.Enquiry) -> Enquiry:
    return Enquiry(
        enquiry_id=row.enquiry_id,
        applicant_nric=row.applicant_nric,
        project_name=row.project_name,
        question=row.question,
        created_at=row.created_at,
        reply=row.reply,
        replied_by=row.replied_by,
        replied_at=row.replied_at,
    )


def _user_to_domain(row: models.User) -> User:
    common = dict(
        nric=row.nric,
        name=row.name,
        age=row.age,
        marital_status=MaritalStatus(row.marital_status),
    )
    role = UserRole(row.role)
    if role == UserRole.MANAGER:
        return Manager(**common)

    applicant_state = dict(
        current_application_id=row.current_application_id,
        booked_flat_type=FlatType(row.booked_flat_type) if row.booked_flat_type else None,
        booked_project=row.booked_project,
    )
    if role == UserRole.OFFICER:
        return Officer(
            **common,
            **applicant_state,
            assigned_project=row.assigned_project,
            registration_approved=row.registration_approved,
        )
    return Applicant(**common, **applicant_state)


class SqlProjectRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_project_by_name(self, name: str) -> Optional[Project]:
        row = self.db.get(models.Project, name)
        return _project_to_domain(row) if row else None

    def list_projects(self) -> list[Project]:
        rows = self.db.query(models.Project).order_by(models.Project.name).all()
        return [_project_to_domain(row) for row in rows]

    def save_project(self, project: Project) -> None:
        with _committing(self.db, f"project {project.name}"):
            row = self.db.get(models.Project, project.name)
            if row is None:
                row = models.Project(name=project.name)
                self.db.add(row)

            row.neighborhood = project.neighborhood
            row.opening_date = project.opening_date
            row.closing_date = project.closing_date
            row.manager_nric = project.manager_in_charge
            row.officer_slots = project.officer_slots
            row.officer_nrics = list(project.officers)
            row.visible = project.visible

            existing = {ft.flat_type: ft for ft in row.flat_types}
            for flat_type, cell in project.flat_types.items():
                ft_row = existing.pop(flat_type.value, None)
                if ft_row is None:
                    ft_row = models.ProjectFlatType(flat_type=flat_type.value)
                    row.flat_types.append(ft_row)
                ft_row.total_units = cell.total_units
                ft_row.remaining_units = cell.remaining_units
                ft_row.price = cell.price

            for stale in existing.values():
                row.flat_types.remove(stale)

    def reserve_unit(self, project: Project, flat_type: FlatType) -> bool:
        cells = models.ProjectFlatType
        return self._adjust_units(project, flat_type, -1, cells.remaining_units > 0)

    def release_unit(self, project: Project, flat_type: FlatType) -> bool:
        cells = models.ProjectFlatType
        return self._adjust_units(project, flat_type, 1, cells.remaining_units < cells.total_units)

    def _adjust_units(self, project: Project, flat_type: FlatType, delta: int, guard) -> bool:
        """
        Move the stored count by `delta` only while `guard` holds

        Left uncommitted so it lands together with the application write that
        follows, whose commit also expires the session's loaded rows. The
        caller's domain cell is refreshed from the stored value.
        """
        cells = models.ProjectFlatType
        match = (cells.project_name == project.name, cells.flat_type == flat_type.value)

        with _committing(self.db, f"{flat_type.value} units of project {project.name}", commit=False):
            result = self.db.execute(
                update(cells)
                .where(*match, guard)
                .values(remaining_units=cells.remaining_units + delta)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info(
                    f"Unit change {delta:+d} refused for {flat_type.value} in {project.name}"
                )
                return False
            remaining = self.db.execute(select(cells.remaining_units).where(*match)).scalar_one()

        cell = project.flat_types.get(flat_type)
        if cell is not None:
            cell.remaining_units = remaining
        return True


class SqlApplicationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_application(self, application_id: str) -> Optional[Application]:
        row = self.db.get(models.Application, application_id)
        return _application_to_domain(row) if row else None

    def list_by_applicant(self, applicant_nric: str) -> list[Application]:
        rows = (
            self.db.query(models.Application)
            .filter_by(applicant_nric=applicant_nric)
            .order_by(models.Application.created_at)
            .all()
        )
        return [_application_to_domain(row) for row in rows]

    def list_by_project(
        self,
        project_name: str,
        status: Optional[ApplicationStatus] = None,
    ) -> list[Application]:
        query = self.db.query(models.Application).filter_by(project_name=project_name)
        if status is not None:
            query = query.filter_by(status=status.value)
        rows = query.order_by(models.Application.created_at).all()
        return [_application_to_domain(row) for row in rows]

    def save_application(self, application: Application) -> None:
        with _committing(self.db, f"application {application.application_id}"):
            row = self.db.get(models.Application, application.application_id)
            if row is None:
                row = models.Application(application_id=application.application_id)
                self.db.add(row)

            row.applicant_nric = application.applicant_nric
            row.project_name = application.project_name
            row.flat_type = application.selected_flat_type.value
            row.status = application.status.value
            row.withdrawal_requested = application.withdrawal_requested
            row.created_at = application.created_at
            row.booked_at = application.booked_at


class SqlUserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, nric: str) -> Optional[User]:
        row = self.db.get(models.User, nric)
        return _user_to_domain(row) if row else None

    def get_applicant(self, nric: str) -> Optional[Applicant]:
        user = self.get_user(nric)
        return user if isinstance(user, Applicant) else None

    def save_applicant(self, applicant: Applicant) -> None:
        self.add(applicant)

    def add(self, user: User) -> None:
        """Insert or update any user, managers included"""
        with _committing(self.db, f"user {user.nric}"):
            row = self.db.get(models.User, user.nric)
            if row is None:
                row = models.User(nric=user.nric)
                self.db.add(row)

            row.name = user.name
            row.age = user.age
            row.marital_status = user.marital_status.value
            row.role = user.role.value

            if isinstance(user, Applicant):
                row.current_application_id = user.current_application_id
                row.booked_flat_type = user.booked_flat_type.value if user.booked_flat_type else None
                row.booked_project = user.booked_project
            if isinstance(user, Officer):
                row.assigned_project = user.assigned_project
                row.registration_approved = user.registration_approved


class SqlEnquiryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        row = self.db.get(models.Enquiry, enquiry_id)
        return _enquiry_to_domain(row) if row else None

    def list_by_applicant(self, applicant_nric: str) -> list[Enquiry]:
        rows = (
            self.db.query(models.Enquiry)
            .filter_by(applicant_nric=applicant_nric)
            .order_by(models.Enquiry.created_at)
            .all()
        )
        return [_enquiry_to_domain(row) for row in rows]

    def list_by_project(self, project_name: str) -> list[Enquiry]:
        rows = (
            self.db.query(models.Enquiry)
            .filter_by(project_name=project_name)
            .order_by(models.Enquiry.created_at)
            .all()
        )
        return [_enquiry_to_domain(row) for row in rows]

    def save_enquiry(self, enquiry: Enquiry) -> None:
        with _committing(self.db, f"enquiry {enquiry.enquiry_id}"):
            row = self.db.get(models.Enquiry, enquiry.enquiry_id)
            if row is None:
                row = models.Enquiry(enquiry_id=enquiry.enquiry_id)
                self.db.add(row)

            row.applicant_nric = enquiry.applicant_nric
            row.project_name = enquiry.project_name
            row.question = enquiry.question
            row.created_at = enquiry.created_at
            row.reply = enquiry.reply
            row.replied_by = enquiry.replied_by
            row.replied_at = enquiry.replied_at

    def delete_enquiry(self, enquiry_id: str) -> None:
        with _committing(self.db, f"enquiry {enquiry_id}"):
            row = self.db.get(models.Enquiry, enquiry_id)
            if row is not None:
                self.db.delete(row)
