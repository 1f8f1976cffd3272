"""
Enquiry tests over in-memory repositories
"""
import pytest
from datetime import datetime, timezone

from src.domain.enums import FlatType
from src.domain.results import ErrorKind, PersistenceError
from src.services.enquiries import EnquiryService
from src.services.repositories import InMemoryEnquiryRepository


pytestmark = pytest.mark.unit

# Frozen clock of the coordinator fixture
NOW = datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def enquiries():
    return InMemoryEnquiryRepository()


@pytest.fixture
def service(coordinator, enquiries):
    return EnquiryService(coordinator=coordinator, enquiries=enquiries)


@pytest.fixture
def people(repos, make_project, make_applicant, make_officer, make_manager):
    projects, _, users = repos
    projects.save_project(make_project(units={FlatType.TWO_ROOM: 1, FlatType.THREE_ROOM: 2}))
    projects.save_project(make_project(name="Hidden", visible=False))
    cast = {
        "manager": make_manager(),
        "officer": make_officer(assigned_project="Acacia Breeze", registration_approved=True),
        "pending_officer": make_officer(nric="T3000000C", assigned_project="Acacia Breeze", registration_approved=False),
        "alice": make_applicant(nric="S2500000A", name="Alice", age=25, married=True),
        "bob": make_applicant(nric="S2600000B", name="Bob", age=26, married=True),
    }
    for user in cast.values():
        users.add(user)
    return cast


def _ask(service, people, question="Is there a carpark?", who="alice"):
    outcome = service.submit_enquiry(people[who], "Acacia Breeze", question)
    assert outcome
    return outcome.enquiry


class TestSubmit:
    def test_submit_enquiry(self, service, people, enquiries):
        outcome = service.submit_enquiry(people["alice"], " Acacia Breeze ", "  Is there a carpark?  ")

        assert outcome
        enquiry = outcome.enquiry
        assert enquiry.enquiry_id.startswith("enq_")
        assert enquiry.question == "Is there a carpark?"
        assert enquiry.project_name == "Acacia Breeze"
        assert enquiry.created_at == NOW
        assert enquiry.is_answered is False
        assert enquiries.get_enquiry(enquiry.enquiry_id) is enquiry

    @pytest.mark.parametrize("question", ["", "   ", None])
    def test_empty_question(self, service, people, question):
        outcome = service.submit_enquiry(people["alice"], "Acacia Breeze", question)

        assert outcome.error == ErrorKind.VALIDATION

    def test_unknown_or_hidden_project(self, service, people):
        assert service.submit_enquiry(people["alice"], "Nowhere", "Hello?").error == ErrorKind.NOT_FOUND
        assert service.submit_enquiry(people["alice"], "Hidden", "Hello?").error == ErrorKind.NOT_FOUND

    def test_only_applicants_ask(self, service, people):
        outcome = service.submit_enquiry(people["manager"], "Acacia Breeze", "Hello?")

        assert outcome.error == ErrorKind.UNAUTHORIZED


class TestOwnerChanges:
    def test_edit_own_unanswered(self, service, people):
        enquiry = _ask(service, people)

        outcome = service.edit_enquiry(people["alice"], enquiry.enquiry_id, "Is there a sheltered carpark?")

        assert outcome
        assert service.get_enquiry(enquiry.enquiry_id).question == "Is there a sheltered carpark?"

    def test_edit_after_reply_refused(self, service, people):
        enquiry = _ask(service, people)
        assert service.reply_to_enquiry(people["officer"], enquiry.enquiry_id, "Yes.")

        outcome = service.edit_enquiry(people["alice"], enquiry.enquiry_id, "Changed my mind")

        assert outcome.error == ErrorKind.BUSINESS_RULE
        assert service.get_enquiry(enquiry.enquiry_id).question == "Is there a carpark?"

    def test_other_applicant_cannot_change(self, service, people):
        enquiry = _ask(service, people)

        assert service.edit_enquiry(people["bob"], enquiry.enquiry_id, "Mine now").error == ErrorKind.UNAUTHORIZED
        assert service.delete_enquiry(people["bob"], enquiry.enquiry_id).error == ErrorKind.UNAUTHORIZED
        assert service.delete_enquiry(people["manager"], enquiry.enquiry_id).error == ErrorKind.UNAUTHORIZED
        assert service.get_enquiry(enquiry.enquiry_id) is not None

    def test_delete_own(self, service, people):
        enquiry = _ask(service, people)

        assert service.delete_enquiry(people["alice"], enquiry.enquiry_id)

        assert service.get_enquiry(enquiry.enquiry_id) is None
        assert service.delete_enquiry(people["alice"], enquiry.enquiry_id).error == ErrorKind.NOT_FOUND

    def test_edit_requires_text(self, service, people):
        enquiry = _ask(service, people)

        assert service.edit_enquiry(people["alice"], enquiry.enquiry_id, " ").error == ErrorKind.VALIDATION


class TestReplies:
    @pytest.mark.parametrize("who", ["officer", "manager"])
    def test_staff_reply(self, service, people, who):
        enquiry = _ask(service, people)

        outcome = service.reply_to_enquiry(people[who], enquiry.enquiry_id, "  Yes, multi-storey.  ")

        assert outcome
        assert outcome.enquiry.is_answered
        assert outcome.enquiry.reply == "Yes, multi-storey."
        assert outcome.enquiry.replied_by == people[who].nric
        assert outcome.enquiry.replied_at == NOW

    def test_reply_restricted_to_project_staff(self, service, people, make_manager):
        enquiry = _ask(service, people)

        assert service.reply_to_enquiry(people["pending_officer"], enquiry.enquiry_id, "Hi").error == ErrorKind.UNAUTHORIZED
        assert service.reply_to_enquiry(make_manager(nric="T1111111Z"), enquiry.enquiry_id, "Hi").error == ErrorKind.UNAUTHORIZED
        assert service.reply_to_enquiry(people["bob"], enquiry.enquiry_id, "Hi").error == ErrorKind.UNAUTHORIZED
        assert service.get_enquiry(enquiry.enquiry_id).is_answered is False

    def test_reply_to_missing_enquiry(self, service, people):
        assert service.reply_to_enquiry(people["manager"], "enq_missing", "Hi").error == ErrorKind.NOT_FOUND
        assert service.reply_to_enquiry(people["manager"], "enq_missing", "").error == ErrorKind.VALIDATION


class TestViews:
    def test_views_by_applicant_and_project(self, service, people):
        first = _ask(service, people)
        second = _ask(service, people, "When is completion?", who="bob")

        assert [e.enquiry_id for e in service.enquiries_of("S2500000A")] == [first.enquiry_id]

        listed, access = service.enquiries_for_project(people["officer"], "Acacia Breeze")
        assert access
        assert {e.enquiry_id for e in listed} == {first.enquiry_id, second.enquiry_id}

        listed, access = service.enquiries_for_project(people["alice"], "Acacia Breeze")
        assert listed == []
        assert access.error == ErrorKind.UNAUTHORIZED


class FailingEnquiryRepository(InMemoryEnquiryRepository):
    def save_enquiry(self, enquiry):
        raise PersistenceError("disk full")


def test_persistence_failure_is_flagged(coordinator, people, caplog):
    service = EnquiryService(coordinator=coordinator, enquiries=FailingEnquiryRepository())

    outcome = service.submit_enquiry(people["alice"], "Acacia Breeze", "Is there a carpark?")

    assert outcome
    assert outcome.persisted is False
    assert "failed to persist enquiry" in caplog.text
