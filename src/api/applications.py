"""
Applications API - Submit, decide, book and withdraw BTO flat applications
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..core.auth import get_actor
from ..core.config import settings
from ..core.errors import outcome_problem, problem_response
from ..domain.entities import Applicant
from ..domain.results import ErrorKind, Outcome
from ..schemas.applications import (
    ApplicationCreate,
    ApplicationList,
    ApplicationResponse,
    TransitionResponse,
)
from ..services.allocation import AllocationCoordinator
from ..services.repositories import User
from .dependencies import get_coordinator

router = APIRouter(prefix=f"/api/{settings.API_VERSION}/applications", tags=["applications"])


def _transition_response(request: Request, outcome: Outcome, status_code: int = status.HTTP_200_OK):
    if not outcome:
        return outcome_problem(request, outcome)

    body = TransitionResponse(
        application=ApplicationResponse.model_validate(outcome.application),
        message=outcome.reason,
        persisted=outcome.persisted,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post("", response_model=TransitionResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    request: Request,
    application_data: ApplicationCreate,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Submit a new application for a flat type in a project.

    The applicant must have no active application, the project must be open
    and offer the flat type, and the applicant must be eligible for it.
    Officers cannot apply to the project they handle.
    """
    outcome = coordinator.submit_application(
        actor,
        application_data.project_name,
        application_data.flat_type,
    )
    return _transition_response(request, outcome, status.HTTP_201_CREATED)


@router.get("/me", response_model=ApplicationList)
async def list_my_applications(
    request: Request,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    List every application of the authenticated applicant, oldest first.
    """
    if not isinstance(actor, Applicant):
        return outcome_problem(
            request,
            Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants hold applications"),
        )

    applications = coordinator.applications_of(actor.nric)
    return ApplicationList(
        applications=[ApplicationResponse.model_validate(app) for app in applications],
        total=len(applications),
    )


@router.get("/lookup", response_model=ApplicationResponse)
async def lookup_application(
    request: Request,
    applicant_nric: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Officer lookup of an applicant's application within the officer's project.
    """
    outcome = coordinator.application_for_applicant(actor, applicant_nric)
    if not outcome:
        return outcome_problem(request, outcome)
    return ApplicationResponse.model_validate(outcome.application)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Get application by ID.

    Readable by its applicant, the project's manager in charge and the
    project's assigned officers.
    """
    application = coordinator.get_application(application_id)
    if application is None:
        return problem_response(
            request=request,
            status=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            title="Not Found",
            detail=f"Application not found: {application_id}",
        )

    if application.applicant_nric != actor.nric:
        access = coordinator.authorize_project_view(actor, application.project_name)
        if not access:
            return outcome_problem(request, access)

    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/approve", response_model=TransitionResponse)
async def approve_application(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Approve a pending application (manager in charge only).

    Requires at least one unit of the selected flat type left. No unit is
    reserved until booking.
    """
    return _transition_response(request, coordinator.approve_application(actor, application_id))


@router.post("/{application_id}/reject", response_model=TransitionResponse)
async def reject_application(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """Reject a pending application (manager in charge only)."""
    return _transition_response(request, coordinator.reject_application(actor, application_id))


@router.post("/{application_id}/booking", response_model=TransitionResponse)
async def book_flat(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Book a flat for a successful application (assigned officer only).

    Takes one unit of the selected flat type from the project inventory.
    """
    return _transition_response(request, coordinator.book_flat(actor, application_id))


@router.post("/{application_id}/withdrawal", response_model=TransitionResponse)
async def request_withdrawal(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """Request withdrawal of the caller's own application."""
    return _transition_response(request, coordinator.request_withdrawal(actor, application_id))


@router.post("/{application_id}/withdrawal/approve", response_model=TransitionResponse)
async def approve_withdrawal(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Approve a withdrawal request (manager in charge only).

    A booked flat goes back into the project inventory.
    """
    return _transition_response(request, coordinator.approve_withdrawal(actor, application_id))


@router.post("/{application_id}/withdrawal/reject", response_model=TransitionResponse)
async def reject_withdrawal(
    request: Request,
    application_id: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """Reject a withdrawal request (manager in charge only)."""
    return _transition_response(request, coordinator.reject_withdrawal(actor, application_id))
