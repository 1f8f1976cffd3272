"""
Project enquiries

Applicants ask questions about a project they can see, and may edit or
delete their own questions until someone answers. An officer assigned to
the project or the manager in charge replies. Refusals come back as falsy
Outcomes, as they do for application actions.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.entities import Applicant, Enquiry, Manager, Officer
from ..domain.results import ErrorKind, Outcome, PersistenceError
from .allocation import Actor, AllocationCoordinator, create_allocation_coordinator
from .inventory import KeyedLocks
from .repositories import EnquiryRepository
from .sql_repository import SqlEnquiryRepository

logger = logging.getLogger(__name__)

_enquiry_locks = KeyedLocks()


def generate_enquiry_id() -> str:
    return f"enq_{uuid.uuid4().hex[:12]}"


class EnquiryService:
    def __init__(
        self,
        coordinator: AllocationCoordinator,
        enquiries: EnquiryRepository,
        log: Optional[logging.Logger] = None,
    ):
        self.coordinator = coordinator
        self.enquiries = enquiries
        self.log = log or logger
        self._locks = _enquiry_locks

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_enquiry(self, enquiry_id: str) -> Optional[Enquiry]:
        if not enquiry_id:
            return None
        return self.enquiries.get_enquiry(enquiry_id)

    def enquiries_of(self, applicant_nric: str) -> list[Enquiry]:
        return sorted(self.enquiries.list_by_applicant(applicant_nric), key=lambda e: e.created_at)

    def enquiries_for_project(self, actor: Actor, project_name: str) -> tuple[list[Enquiry], Outcome]:
        """Staff view of a project's enquiries, oldest first"""
        allowed = self.coordinator.authorize_project_view(actor, project_name)
        if not allowed:
            return [], allowed
        found = self.enquiries.list_by_project(project_name.strip())
        return sorted(found, key=lambda e: e.created_at), allowed

    # ------------------------------------------------------------------
    # Applicant actions
    # ------------------------------------------------------------------

    def submit_enquiry(self, actor: Actor, project_name: str, question: str) -> Outcome:
        action = "enquiry.submit"

        if not isinstance(actor, Applicant):
            return self._refuse(
                action, Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants can submit enquiries")
            )
        if not question or not question.strip():
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "Enquiry text is required"))

        project = self.coordinator.get_project_by_name(project_name)
        if project is None or not self.coordinator.project_visible_to(actor, project):
            return self._refuse(
                action, Outcome.failure(ErrorKind.NOT_FOUND, f"Project not found: {project_name}")
            )

        enquiry = Enquiry(
            enquiry_id=generate_enquiry_id(),
            applicant_nric=actor.nric,
            project_name=project.name,
            question=question.strip(),
            created_at=self.coordinator.clock(),
        )
        outcome = Outcome.success("Enquiry submitted", enquiry=enquiry)
        self._persist(action, outcome, enquiry)

        self.log.info(f"Enquiry {enquiry.enquiry_id} submitted by {actor.nric} on {project.name}")
        return outcome

    def edit_enquiry(self, actor: Actor, enquiry_id: str, question: str) -> Outcome:
        action = "enquiry.edit"

        if not question or not question.strip():
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "Enquiry text is required"))

        with self._locks(("enquiry", enquiry_id)):
            enquiry, failure = self._find_owned(actor, enquiry_id)
            if failure:
                return self._refuse(action, failure)
            if enquiry.is_answered:
                return self._refuse(
                    action, Outcome.violation(f"Enquiry {enquiry_id} has been answered and cannot be edited")
                )

            enquiry.question = question.strip()
            outcome = Outcome.success("Enquiry updated", enquiry=enquiry)
            self._persist(action, outcome, enquiry)

        self.log.info(f"Enquiry {enquiry_id} edited by {actor.nric}")
        return outcome

    def delete_enquiry(self, actor: Actor, enquiry_id: str) -> Outcome:
        action = "enquiry.delete"

        with self._locks(("enquiry", enquiry_id)):
            enquiry, failure = self._find_owned(actor, enquiry_id)
            if failure:
                return self._refuse(action, failure)

            outcome = Outcome.success("Enquiry deleted", enquiry=enquiry)
            try:
                self.enquiries.delete_enquiry(enquiry_id)
            except PersistenceError as e:
                outcome.persisted = False
                self.log.error(f"{action}: failed to delete enquiry {enquiry_id}: {e}")

        self.log.info(f"Enquiry {enquiry_id} deleted by {actor.nric}")
        return outcome

    # ------------------------------------------------------------------
    # Staff actions
    # ------------------------------------------------------------------

    def reply_to_enquiry(self, actor: Actor, enquiry_id: str, reply: str) -> Outcome:
        """Answer an enquiry; a later reply replaces the earlier one"""
        action = "enquiry.reply"

        if not isinstance(actor, (Officer, Manager)):
            return self._refuse(
                action,
                Outcome.failure(ErrorKind.UNAUTHORIZED, "Only officers and managers can reply to enquiries"),
            )
        if not reply or not reply.strip():
            return self._refuse(action, Outcome.failure(ErrorKind.VALIDATION, "Reply text is required"))

        with self._locks(("enquiry", enquiry_id)):
            enquiry = self.get_enquiry(enquiry_id)
            if enquiry is None:
                return self._refuse(
                    action, Outcome.failure(ErrorKind.NOT_FOUND, f"Enquiry not found: {enquiry_id}")
                )

            allowed = self.coordinator.authorize_project_view(actor, enquiry.project_name)
            if not allowed:
                return self._refuse(action, allowed)

            enquiry.reply = reply.strip()
            enquiry.replied_by = actor.nric
            enquiry.replied_at = self.coordinator.clock()
            outcome = Outcome.success("Enquiry answered", enquiry=enquiry)
            self._persist(action, outcome, enquiry)

        self.log.info(f"Enquiry {enquiry_id} answered by {actor.nric}")
        return outcome

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_owned(self, actor: Actor, enquiry_id: str) -> tuple[Optional[Enquiry], Optional[Outcome]]:
        if not isinstance(actor, Applicant):
            return None, Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants can change enquiries")

        enquiry = self.get_enquiry(enquiry_id)
        if enquiry is None:
            return None, Outcome.failure(ErrorKind.NOT_FOUND, f"Enquiry not found: {enquiry_id}")
        if enquiry.applicant_nric != actor.nric:
            return None, Outcome.failure(
                ErrorKind.UNAUTHORIZED, f"Enquiry {enquiry_id} does not belong to {actor.nric}"
            )
        return enquiry, None

    def _refuse(self, action: str, outcome: Outcome) -> Outcome:
        self.log.info(f"{action} refused ({outcome.error.value}): {outcome.reason}")
        return outcome

    def _persist(self, action: str, outcome: Outcome, enquiry: Enquiry) -> None:
        try:
            self.enquiries.save_enquiry(enquiry)
        except PersistenceError as e:
            outcome.persisted = False
            self.log.error(f"{action}: failed to persist enquiry {enquiry.enquiry_id}: {e}")


def create_enquiry_service(db: Session) -> EnquiryService:
    """Factory function to build an enquiry service over SQL repositories"""
    return EnquiryService(
        coordinator=create_allocation_coordinator(db),
        enquiries=SqlEnquiryRepository(db),
    )
