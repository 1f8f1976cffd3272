from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..services.allocation import AllocationCoordinator, create_allocation_coordinator
from ..services.enquiries import EnquiryService, create_enquiry_service


def get_coordinator(db: Session = Depends(get_db)) -> AllocationCoordinator:
    """FastAPI dependency for a request-scoped allocation coordinator"""
    return create_allocation_coordinator(db)


def get_enquiry_service(db: Session = Depends(get_db)) -> EnquiryService:
    """FastAPI dependency for a request-scoped enquiry service"""
    return create_enquiry_service(db)
