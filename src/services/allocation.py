"""
Allocation coordinator

Runs applicant, officer and manager actions through the lifecycle state
machine. Authorization and ownership checks live here, not in the state
machine. Every guard is evaluated before anything is mutated, and each
mutated entity is saved once after the transition succeeds. Actions on an
application load it under that application's lock, so a decision always
sees the status left by the previous one. Unit counts move in the project
store itself through `reserve_unit` and `release_unit`.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..domain.entities import Applicant, Application, Manager, Officer, Project
from ..domain.enums import ApplicationStatus, FlatType
from ..domain.results import ErrorKind, Outcome, PersistenceError
from .eligibility import EligibilityRules, eligibility_rules
from .inventory import KeyedLocks
from .lifecycle import ApplicationLifecycle, application_lifecycle
from .repositories import ApplicationRepository, ProjectRepository, UserRepository
from .sql_repository import SqlApplicationRepository, SqlProjectRepository, SqlUserRepository

logger = logging.getLogger(__name__)

Actor = Union[Applicant, Officer, Manager, None]

# Shared across coordinator instances so per-request coordinators still
# serialize on the same keys
_operation_locks = KeyedLocks()


def local_clock(offset_hours: float) -> Callable[[], datetime]:
    tz = timezone(timedelta(hours=offset_hours))
    return lambda: datetime.now(tz)


class AllocationCoordinator:
    """Entry point for every state-changing action on applications"""

    def __init__(
        self,
        projects: ProjectRepository,
        applications: ApplicationRepository,
        users: UserRepository,
        lifecycle: Optional[ApplicationLifecycle] = None,
        rules: Optional[EligibilityRules] = None,
        clock: Optional[Callable[[], datetime]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.projects = projects
        self.applications = applications
        self.users = users
        self.lifecycle = lifecycle or application_lifecycle
        self.rules = rules or eligibility_rules
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.log = log or logger
        self._locks = _operation_locks

    # ------------------------------------------------------------------
    # Project lookup
    # ------------------------------------------------------------------

    def get_project_by_name(self, name: str) -> Optional[Project]:
        if not name or not name.strip():
            return None
        return self.projects.get_project_by_name(name.strip())

    def is_open_for_applications(self, project: Project, now: Optional[datetime] = None) -> bool:
        return project.is_open_for_applications(now or self.clock())

    def visible_projects_for(self, applicant: Applicant) -> list[Project]:
        """
        Projects an applicant may currently apply to

        Visible, inside the application window, offering at least one flat
        type the applicant is eligible for. Singles additionally need a unit
        of that type left. Officers never see the project they handle.
        """
        now = self.clock()
        visible = []
        for project in self.projects.list_projects():
            if isinstance(applicant, Officer) and applicant.is_registered_for(project.name):
                continue
            if not project.is_open_for_applications(now):
                continue

            eligible = self.rules.eligible_flat_types(applicant, project.offered_flat_types())
            if not applicant.is_married:
                eligible = [ft for ft in eligible if project.flat_types[ft].remaining_units > 0]
            if eligible:
                visible.append(project)
        return visible

    def project_visible_to(self, actor: Actor, project: Project) -> bool:
        """
        Whether an actor may see a project at all

        Managers see every project and officers see the one they handle.
        Hidden projects stay visible to applicants who hold an application in
        them, so they can still follow it.
        """
        if isinstance(actor, Manager):
            return True
        if isinstance(actor, Officer) and actor.is_registered_for(project.name):
            return True
        if project.visible:
            return True
        if not isinstance(actor, Applicant):
            return False
        return any(
            app.project_name == project.name
            for app in self.applications.list_by_applicant(actor.nric)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_application(self, application_id: str) -> Optional[Application]:
        if not application_id:
            return None
        return self.applications.get_application(application_id)

    def applications_of(self, applicant_nric: str) -> list[Application]:
        return sorted(
            self.applications.list_by_applicant(applicant_nric),
            key=lambda app: app.created_at,
        )

    def authorize_project_view(self, actor: Actor, project_name: str) -> Outcome:
        """Manager in charge or an assigned officer may see a project's applications"""
        project = self.get_project_by_name(project_name)
        if project is None:
            return Outcome.failure(ErrorKind.NOT_FOUND, f"Project not found: {project_name}")

        if isinstance(actor, Manager) and project.is_managed_by(actor.nric):
            return Outcome.success()
        if isinstance(actor, Officer) and actor.is_assigned_to(project.name):
            return Outcome.success()

        return Outcome.failure(
            ErrorKind.UNAUTHORIZED,
            f"Not authorized to view applications of project {project.name}",
        )

    def applications_for_project(
        self,
        project_name: str,
        status: Optional[ApplicationStatus] = None,
        withdrawal_requested: Optional[bool] = None,
    ) -> list[Application]:
        found = self.applications.list_by_project(project_name, status)
        if withdrawal_requested is not None:
            found = [app for app in found if app.withdrawal_requested == withdrawal_requested]
        return sorted(found, key=lambda app: app.created_at)

    def pending_withdrawals(self, project_name: str) -> list[Application]:
        return self.applications_for_project(project_name, withdrawal_requested=True)

    def application_for_applicant(self, officer: Actor, applicant_nric: str) -> Outcome:
        """Officer lookup of an applicant's application within the officer's project"""
        if not isinstance(officer, Officer) or not officer.registration_approved \
                or not officer.assigned_project:
            return Outcome.failure(
                ErrorKind.UNAUTHORIZED, "Only officers assigned to a project can look up applications"
            )
        if not applicant_nric:
            return Outcome.failure(ErrorKind.VALIDATION, "Applicant NRIC is required")

        candidates = [
            app for app in self.applications_of(applicant_nric)
            if app.project_name == officer.assigned_project
        ]
        if not candidates:
            return Outcome.failure(
                ErrorKind.NOT_FOUND,
                f"No application from {applicant_nric} in project {officer.assigned_project}",
            )

        # Prefer the live application over earlier unsuccessful ones
        active = [app for app in candidates if app.is_active]
        return Outcome.success(application=(active or candidates)[-1])

    # ------------------------------------------------------------------
    # Applicant actions
    # ------------------------------------------------------------------

    def submit_application(
        self,
        actor: Actor,
        project_name: str,
        flat_type: Optional[Union[FlatType, str]],
    ) -> Outcome:
        action = "application.submit"

        if actor is None:
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "Applicant is required"))
        if not isinstance(actor, Applicant):
            return self._refuse(
                action,
                Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants can submit applications"),
            )
        if not project_name or not project_name.strip():
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "Project name is required"))

        if isinstance(flat_type, str):
            flat_type = FlatType.parse(flat_type)
        if flat_type is None:
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "A valid flat type is required"))

        project = self.get_project_by_name(project_name)
        if project is None:
            return self._refuse(
                action, Outcome.failure(ErrorKind.NOT_FOUND, f"Project not found: {project_name}")
            )

        if isinstance(actor, Officer) and actor.is_registered_for(project.name):
            return self._refuse(
                action,
                Outcome.failure(
                    ErrorKind.UNAUTHORIZED,
                    f"Officer {actor.nric} handles project {project.name} and cannot apply to it",
                ),
            )

        with self._locks(("applicant", actor.nric)):
            existing = self.applications.list_by_applicant(actor.nric)
            outcome = self.lifecycle.submit(actor, project, flat_type, existing, self.clock())
            if not outcome:
                return self._refuse(action, outcome)

            self._persist(
                action,
                outcome,
                (self.applications.save_application, outcome.application),
                (self.users.save_applicant, actor),
            )

        self.log.info(
            f"Application {outcome.application.application_id} submitted by {actor.nric} "
            f"for {flat_type.value} in {project.name}",
        )
        return outcome

    def request_withdrawal(self, actor: Actor, application_id: str) -> Outcome:
        action = "application.withdrawal.request"

        if not isinstance(actor, Applicant):
            return self._refuse(
                action,
                Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants can request withdrawal"),
            )

        with self._locks(("application", application_id)):
            application, failure = self._find_application(application_id)
            if failure:
                return self._refuse(action, failure)

            if application.applicant_nric != actor.nric:
                return self._refuse(
                    action,
                    Outcome.failure(
                        ErrorKind.UNAUTHORIZED,
                        f"Application {application_id} does not belong to {actor.nric}",
                    ),
                )

            outcome = self.lifecycle.request_withdrawal(application)
            if not outcome:
                return self._refuse(action, outcome)
            self._persist(action, outcome, (self.applications.save_application, application))

        self.log.info(f"Withdrawal requested for application {application_id}")
        return outcome

    # ------------------------------------------------------------------
    # Manager actions
    # ------------------------------------------------------------------

    def approve_application(self, manager: Actor, application_id: str) -> Outcome:
        action = "application.approve"

        with self._locks(("application", application_id)):
            application, project, failure = self._load_for_manager(manager, application_id)
            if failure:
                return self._refuse(action, failure)

            outcome = self.lifecycle.approve(application, project)
            if not outcome:
                return self._refuse(action, outcome)
            self._persist(action, outcome, (self.applications.save_application, application))

        self.log.info(f"Application {application_id} approved by {manager.nric}")
        return outcome

    def reject_application(self, manager: Actor, application_id: str) -> Outcome:
        action = "application.reject"

        with self._locks(("application", application_id)):
            application, project, failure = self._load_for_manager(manager, application_id)
            if failure:
                return self._refuse(action, failure)

            applicant, failure = self._find_applicant(application)
            if failure:
                return self._refuse(action, failure)

            outcome = self.lifecycle.reject(application, applicant)
            if not outcome:
                return self._refuse(action, outcome)
            self._persist(
                action,
                outcome,
                (self.applications.save_application, application),
                (self.users.save_applicant, applicant),
            )

        self.log.info(f"Application {application_id} rejected by {manager.nric}")
        return outcome

    def approve_withdrawal(self, manager: Actor, application_id: str) -> Outcome:
        action = "application.withdrawal.approve"

        with self._locks(("application", application_id)):
            application, project, failure = self._load_for_manager(manager, application_id)
            if failure:
                return self._refuse(action, failure)

            applicant, failure = self._find_applicant(application)
            if failure:
                return self._refuse(action, failure)

            was_booked = application.status == ApplicationStatus.BOOKED
            outcome = self.lifecycle.approve_withdrawal(
                application, applicant, project, release=self.projects.release_unit
            )
            if not outcome:
                return self._refuse(action, outcome)

            # The returned unit is already stored and commits with the application
            self._persist(
                action,
                outcome,
                (self.applications.save_application, application),
                (self.users.save_applicant, applicant),
            )

        self.log.info(
            f"Withdrawal of application {application_id} approved by {manager.nric}"
            + (f", {application.selected_flat_type.value} unit returned" if was_booked else ""),
        )
        return outcome

    def reject_withdrawal(self, manager: Actor, application_id: str) -> Outcome:
        action = "application.withdrawal.reject"

        with self._locks(("application", application_id)):
            application, project, failure = self._load_for_manager(manager, application_id)
            if failure:
                return self._refuse(action, failure)

            outcome = self.lifecycle.reject_withdrawal(application)
            if not outcome:
                return self._refuse(action, outcome)
            self._persist(action, outcome, (self.applications.save_application, application))

        self.log.info(f"Withdrawal of application {application_id} rejected by {manager.nric}")
        return outcome

    # ------------------------------------------------------------------
    # Officer actions
    # ------------------------------------------------------------------

    def book_flat(self, officer: Actor, application_id: str) -> Outcome:
        """
        Book the flat of a SUCCESSFUL application

        The unit is taken with a conditional decrement in the project store,
        not from the loaded project copy. A booking that loses the race for
        the last unit is refused and the application stays SUCCESSFUL.
        """
        action = "application.book"

        if not isinstance(officer, Officer):
            return self._refuse(
                action, Outcome.failure(ErrorKind.UNAUTHORIZED, "Only officers can book flats")
            )

        with self._locks(("application", application_id)):
            application, failure = self._find_application(application_id)
            if failure:
                return self._refuse(action, failure)

            project, failure = self._find_project(application)
            if failure:
                return self._refuse(action, failure)

            if not officer.is_assigned_to(project.name):
                return self._refuse(
                    action,
                    Outcome.failure(
                        ErrorKind.UNAUTHORIZED,
                        f"Officer {officer.nric} is not assigned to project {project.name}",
                    ),
                )

            applicant, failure = self._find_applicant(application)
            if failure:
                return self._refuse(action, failure)

            if applicant.has_booked_flat():
                return self._refuse(
                    action,
                    Outcome.violation(f"Applicant {applicant.nric} has already booked a flat"),
                )

            outcome = self.lifecycle.book_flat(
                application, applicant, project, self.clock(), reserve=self.projects.reserve_unit
            )
            if not outcome:
                return self._refuse(action, outcome)
            self._persist(
                action,
                outcome,
                (self.applications.save_application, application),
                (self.users.save_applicant, applicant),
            )

        self.log.info(
            f"Flat booked for application {application_id} by officer {officer.nric}: "
            f"{application.selected_flat_type.value} in {project.name}, "
            f"{project.flat_types[application.selected_flat_type].remaining_units} left",
        )
        return outcome

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_application(self, application_id: str) -> tuple[Optional[Application], Optional[Outcome]]:
        if not application_id or not application_id.strip():
            return None, Outcome.failure(ErrorKind.VALIDATION, "Application ID is required")

        application = self.applications.get_application(application_id)
        if application is None:
            return None, Outcome.failure(ErrorKind.NOT_FOUND, f"Application not found: {application_id}")
        return application, None

    def _find_project(self, application: Application) -> tuple[Optional[Project], Optional[Outcome]]:
        project = self.projects.get_project_by_name(application.project_name)
        if project is None:
            return None, Outcome.failure(
                ErrorKind.NOT_FOUND, f"Project not found: {application.project_name}"
            )
        return project, None

    def _find_applicant(self, application: Application) -> tuple[Optional[Applicant], Optional[Outcome]]:
        applicant = self.users.get_applicant(application.applicant_nric)
        if applicant is None:
            return None, Outcome.failure(
                ErrorKind.NOT_FOUND, f"Applicant not found: {application.applicant_nric}"
            )
        return applicant, None

    def _load_for_manager(
        self,
        manager: Actor,
        application_id: str,
    ) -> tuple[Optional[Application], Optional[Project], Optional[Outcome]]:
        if not isinstance(manager, Manager):
            return None, None, Outcome.failure(
                ErrorKind.UNAUTHORIZED, "Only managers can decide on applications"
            )

        application, failure = self._find_application(application_id)
        if failure:
            return None, None, failure

        project, failure = self._find_project(application)
        if failure:
            return None, None, failure

        if not project.is_managed_by(manager.nric):
            return None, None, Outcome.failure(
                ErrorKind.UNAUTHORIZED,
                f"Manager {manager.nric} is not in charge of project {project.name}",
            )
        return application, project, None

    def _refuse(self, action: str, outcome: Outcome) -> Outcome:
        self.log.info(f"{action} refused ({outcome.error.value}): {outcome.reason}")
        return outcome

    def _persist(self, action: str, outcome: Outcome, *writes) -> None:
        """Store each entity; a failing write is reported, never rolled back"""
        for save, entity in writes:
            try:
                save(entity)
            except PersistenceError as e:
                outcome.persisted = False
                self.log.error(f"{action}: failed to persist {type(entity).__name__}: {e}")


def create_allocation_coordinator(db: Session) -> AllocationCoordinator:
    """Factory function to build a coordinator over SQL repositories"""
    return AllocationCoordinator(
        projects=SqlProjectRepository(db),
        applications=SqlApplicationRepository(db),
        users=SqlUserRepository(db),
        clock=local_clock(settings.TIMEZONE_OFFSET_HOURS),
    )
