"""
Application lifecycle state machine

    PENDING --approve--> SUCCESSFUL --book_flat--> BOOKED
    PENDING --reject---> UNSUCCESSFUL

`withdrawal_requested` can be raised on any application that is not
UNSUCCESSFUL. Approving the withdrawal moves it to UNSUCCESSFUL, handing the
unit back when it was BOOKED.

Transitions never raise for a refused guard. They return a falsy Outcome and
leave every object untouched.
"""
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from ..domain.entities import Applicant, Application, Project
from ..domain.enums import ApplicationStatus, FlatType
from ..domain.results import Outcome
from .eligibility import EligibilityRules, eligibility_rules
from .inventory import FlatInventory, flat_inventory

# Takes or returns one unit of a flat type; False when the cell refuses
UnitStep = Callable[[Project, FlatType], bool]


def generate_application_id() -> str:
    return f"app_{uuid.uuid4().hex[:12]}"


class ApplicationLifecycle:
    def __init__(
        self,
        rules: Optional[EligibilityRules] = None,
        inventory: Optional[FlatInventory] = None,
    ):
        self.rules = rules or eligibility_rules
        self.inventory = inventory or flat_inventory

    def submit(
        self,
        applicant: Applicant,
        project: Project,
        flat_type: FlatType,
        existing: Iterable[Application] = (),
        now: Optional[datetime] = None,
    ) -> Outcome:
        """
        Create a PENDING application

        Args:
            applicant: Applicant submitting
            project: Target project
            flat_type: Selected flat type
            existing: Every application already held by the applicant
            now: Submission time (defaults to current UTC time)

        Returns:
            Outcome carrying the new application on success
        """
        now = now or datetime.now(timezone.utc)

        active = [app for app in existing if app.is_active]
        if active:
            return Outcome.violation(
                f"Applicant {applicant.nric} already has an active application "
                f"({active[0].application_id})"
            )

        if not project.is_open_for_applications(now):
            return Outcome.violation(f"Project {project.name} is not open for applications")

        if not project.offers(flat_type):
            return Outcome.violation(f"Project {project.name} does not offer {flat_type.value} flats")

        if not self.rules.is_eligible_for_flat_type(applicant, flat_type):
            return Outcome.violation(
                f"Applicant {applicant.nric} is not eligible for {flat_type.value} flats"
            )

        application = Application(
            application_id=generate_application_id(),
            applicant_nric=applicant.nric,
            project_name=project.name,
            selected_flat_type=flat_type,
            created_at=now,
        )
        applicant.current_application_id = application.application_id

        return Outcome.success("Application submitted", application)

    def approve(self, application: Application, project: Project) -> Outcome:
        # Approval only checks availability; the unit is taken at booking
        if application.status != ApplicationStatus.PENDING:
            return self._wrong_status(application, "approve", ApplicationStatus.PENDING)

        if not self.inventory.has_available(project, application.selected_flat_type):
            return Outcome.violation(
                f"No {application.selected_flat_type.value} units left in {project.name}"
            )

        application.status = ApplicationStatus.SUCCESSFUL
        return Outcome.success("Application approved", application)

    def reject(self, application: Application, applicant: Applicant) -> Outcome:
        if application.status != ApplicationStatus.PENDING:
            return self._wrong_status(application, "reject", ApplicationStatus.PENDING)

        application.status = ApplicationStatus.UNSUCCESSFUL
        application.withdrawal_requested = False
        self._release_reference(application, applicant)
        return Outcome.success("Application rejected", application)

    def book_flat(
        self,
        application: Application,
        applicant: Applicant,
        project: Project,
        now: Optional[datetime] = None,
        reserve: Optional[UnitStep] = None,
    ) -> Outcome:
        """
        Book the selected flat for a SUCCESSFUL application

        `reserve` takes the unit (defaults to the in-process inventory). It is
        the last guard, so a refusal leaves the application and applicant as
        they were.
        """
        if application.status != ApplicationStatus.SUCCESSFUL:
            return self._wrong_status(application, "book", ApplicationStatus.SUCCESSFUL)

        reserve = reserve or self.inventory.reserve
        if not reserve(project, application.selected_flat_type):
            return Outcome.violation(
                f"No {application.selected_flat_type.value} units left in {project.name}"
            )

        application.status = ApplicationStatus.BOOKED
        application.booked_at = now or datetime.now(timezone.utc)
        applicant.booked_flat_type = application.selected_flat_type
        applicant.booked_project = project.name
        return Outcome.success("Flat booked", application)

    def request_withdrawal(self, application: Application) -> Outcome:
        if application.status == ApplicationStatus.UNSUCCESSFUL:
            return self._already_unsuccessful(application)

        # Repeating the request is accepted
        application.withdrawal_requested = True
        return Outcome.success("Withdrawal requested", application)

    def approve_withdrawal(
        self,
        application: Application,
        applicant: Applicant,
        project: Project,
        release: Optional[UnitStep] = None,
    ) -> Outcome:
        if application.status == ApplicationStatus.UNSUCCESSFUL:
            return self._already_unsuccessful(application)

        if not application.withdrawal_requested:
            return self._no_withdrawal(application)

        if application.status == ApplicationStatus.BOOKED:
            release = release or self.inventory.release
            release(project, application.selected_flat_type)
            if applicant.booked_project == application.project_name:
                applicant.clear_booking()

        application.status = ApplicationStatus.UNSUCCESSFUL
        application.withdrawal_requested = False
        self._release_reference(application, applicant)
        return Outcome.success("Withdrawal approved", application)

    def reject_withdrawal(self, application: Application) -> Outcome:
        if application.status == ApplicationStatus.UNSUCCESSFUL:
            return self._already_unsuccessful(application)

        if not application.withdrawal_requested:
            return self._no_withdrawal(application)

        application.withdrawal_requested = False
        return Outcome.success("Withdrawal rejected", application)

    @staticmethod
    def _release_reference(application: Application, applicant: Applicant) -> None:
        if applicant.current_application_id == application.application_id:
            applicant.current_application_id = None

    @staticmethod
    def _wrong_status(
        application: Application,
        action: str,
        expected: ApplicationStatus,
    ) -> Outcome:
        return Outcome.violation(
            f"Cannot {action} application {application.application_id}: "
            f"status is {application.status.value}, expected {expected.value}"
        )

    @staticmethod
    def _already_unsuccessful(application: Application) -> Outcome:
        return Outcome.violation(
            f"Application {application.application_id} is already unsuccessful"
        )

    @staticmethod
    def _no_withdrawal(application: Application) -> Outcome:
        return Outcome.violation(
            f"No withdrawal requested for application {application.application_id}"
        )


# Singleton instance
application_lifecycle = ApplicationLifecycle()
