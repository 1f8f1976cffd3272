"""
Enquiries API - Follow up on enquiries: list your own, edit, delete and reply
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from ..core.auth import get_actor
from ..core.config import settings
from ..core.errors import outcome_problem
from ..domain.entities import Applicant
from ..domain.results import ErrorKind, Outcome
from ..schemas.enquiries import (
    EnquiryActionResponse,
    EnquiryList,
    EnquiryReply,
    EnquiryResponse,
    EnquiryUpdate,
)
from ..services.enquiries import EnquiryService
from ..services.repositories import User
from .dependencies import get_enquiry_service

router = APIRouter(prefix=f"/api/{settings.API_VERSION}/enquiries", tags=["enquiries"])


def _action_response(request: Request, outcome: Outcome):
    if not outcome:
        return outcome_problem(request, outcome)
    return EnquiryActionResponse(
        enquiry=EnquiryResponse.model_validate(outcome.enquiry),
        message=outcome.reason,
        persisted=outcome.persisted,
    )


@router.get("/me", response_model=EnquiryList)
async def list_my_enquiries(
    request: Request,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    if not isinstance(actor, Applicant):
        return outcome_problem(
            request,
            Outcome.failure(ErrorKind.UNAUTHORIZED, "Only applicants submit enquiries"),
        )

    enquiries = service.enquiries_of(actor.nric)
    return EnquiryList(
        enquiries=[EnquiryResponse.model_validate(e) for e in enquiries],
        total=len(enquiries),
    )


@router.patch("/{enquiry_id}", response_model=EnquiryActionResponse)
async def edit_enquiry(
    request: Request,
    enquiry_id: str,
    update: EnquiryUpdate,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    """
    Change the question of an unanswered enquiry you submitted.
    """
    return _action_response(request, service.edit_enquiry(actor, enquiry_id, update.question))


@router.delete("/{enquiry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enquiry(
    request: Request,
    enquiry_id: str,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    outcome = service.delete_enquiry(actor, enquiry_id)
    if not outcome:
        return outcome_problem(request, outcome)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{enquiry_id}/reply", response_model=EnquiryActionResponse)
async def reply_to_enquiry(
    request: Request,
    enquiry_id: str,
    reply: EnquiryReply,
    actor: User = Depends(get_actor),
    service: EnquiryService = Depends(get_enquiry_service),
):
    """
    Answer an enquiry. Open to officers assigned to the project and to the
    manager in charge.
    """
    return _action_response(request, service.reply_to_enquiry(actor, enquiry_id, reply.reply))
