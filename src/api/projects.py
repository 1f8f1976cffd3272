"""
Projects API - Browse projects, their inventory, applications and enquiries
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..core.auth import get_actor
from ..core.config import settings
from ..core.errors import outcome_problem, problem_response
from ..domain.entities import Applicant, Manager
from ..domain.enums import ApplicationStatus
from ..schemas.applications import ApplicationList, ApplicationResponse
from ..schemas.enquiries import EnquiryActionResponse, EnquiryCreate, EnquiryList, EnquiryResponse
from ..schemas.projects import ProjectList, ProjectResponse
from ..services.allocation import AllocationCoordinator
from ..services.enquiries import EnquiryService
from ..services.repositories import User
from .dependencies import get_coordinator, get_enquiry_service

router = APIRouter(prefix=f"/api/{settings.API_VERSION}/projects", tags=["projects"])


@router.get("", response_model=ProjectList)
async def list_projects(
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    List projects for the caller.

    Applicants see projects that are visible, open and offer a flat type
    they are eligible for. Managers see the projects they are in charge of.
    """
    if isinstance(actor, Applicant):
        projects = coordinator.visible_projects_for(actor)
    else:
        projects = [
            p for p in coordinator.projects.list_projects()
            if isinstance(actor, Manager) and p.is_managed_by(actor.nric)
        ]

    return ProjectList(
        projects=[ProjectResponse.from_domain(p) for p in projects],
        total=len(projects),
    )


@router.get("/{project_name}", response_model=ProjectResponse)
async def get_project(
    request: Request,
    project_name: str,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    Get a project with its remaining units per flat type.

    Hidden projects answer 404 to applicants, unless they hold an
    application in the project.
    """
    project = coordinator.get_project_by_name(project_name)
    if project is None or not coordinator.project_visible_to(actor, project):
        return problem_response(
            request=request,
            status=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            title="Not Found",
            detail=f"Project not found: {project_name}",
        )
    return ProjectResponse.from_domain(project)


@router.get("/{project_name}/applications", response_model=ApplicationList)
async def list_project_applications(
    request: Request,
    project_name: str,
    status_filter: Optional[ApplicationStatus] = None,
    withdrawal_requested: Optional[bool] = None,
    actor: User = Depends(get_actor),
    coordinator: AllocationCoordinator = Depends(get_coordinator),
):
    """
    List applications of a project.

    Restricted to the manager in charge and assigned officers. Optional
    filtering by status and by pending withdrawal request.
    """
    access = coordinator.authorize_project_view(actor, project_name)
    if not access:
        return outcome_problem(request, access)

    applications = coordinator.applications_for_project(
        project_name,
        status=status_filter,
        withdrawal_requested=withdrawal_requested,
    )
    return ApplicationList(
        applications=[ApplicationResponse.model_validate(app) for app in applications],
        total=len(applications),
    )


@router.post(
    "/{project_name}/enquiries",
    response_model=EnquiryActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_enquiry(
    request: Request,
    project_name: str,
    enquiry_data: EnquiryCreate,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    """
    Ask a question about a project the applicant can see.
    """
    outcome = service.submit_enquiry(actor, project_name, enquiry_data.question)
    if not outcome:
        return outcome_problem(request, outcome)

    body = EnquiryActionResponse(
        enquiry=EnquiryResponse.model_validate(outcome.enquiry),
        message=outcome.reason,
        persisted=outcome.persisted,
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body.model_dump(mode="json"))


@router.get("/{project_name}/enquiries", response_model=EnquiryList)
async def list_project_enquiries(
    request: Request,
    project_name: str,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    """
    List enquiries about a project, for its manager and assigned officers.
    """
    enquiries, access = service.enquiries_for_project(actor, project_name)
    if not access:
        return outcome_problem(request, access)

    return EnquiryList(
        enquiries=[EnquiryResponse.model_validate(e) for e in enquiries],
        total=len(enquiries),
    )
