from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    """Applicants, officers and managers, keyed by NRIC"""

    __tablename__ = "users"

    nric = Column(String(9), primary_key=True)
    name = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    marital_status = Column(String, nullable=False)  # single, married
    role = Column(String, nullable=False, index=True)  # applicant, officer, manager

    # Applicant state
    current_application_id = Column(String, nullable=True)
    booked_flat_type = Column(String, nullable=True)
    booked_project = Column(String, nullable=True)

    # Officer state
    assigned_project = Column(String, nullable=True, index=True)
    registration_approved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<User(nric={self.nric}, role={self.role})>"


class Project(Base):
    """BTO projects"""

    __tablename__ = "projects"

    name = Column(String, primary_key=True)
    neighborhood = Column(String, nullable=False)

    # Application window, both dates inclusive
    opening_date = Column(Date, nullable=False)
    closing_date = Column(Date, nullable=False)

    manager_nric = Column(String(9), nullable=False, index=True)
    officer_slots = Column(Integer, nullable=False, default=10)
    officer_nrics = Column(JSON, nullable=False, default=list)
    visible = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    flat_types = relationship(
        "ProjectFlatType",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Project(name={self.name}, manager={self.manager_nric})>"


class ProjectFlatType(Base):
    """Unit inventory per project and flat type"""

    __tablename__ = "project_flat_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_name = Column(String, ForeignKey("projects.name", ondelete="CASCADE"), nullable=False)
    flat_type = Column(String, nullable=False)  # 2-Room, 3-Room
    total_units = Column(Integer, nullable=False)
    remaining_units = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0.0)

    project = relationship("Project", back_populates="flat_types")

    __table_args__ = (
        UniqueConstraint("project_name", "flat_type", name="uq_project_flat_type"),
        CheckConstraint(
            "remaining_units >= 0 AND remaining_units <= total_units",
            name="ck_remaining_units_range",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectFlatType(project={self.project_name}, type={self.flat_type}, "
            f"remaining={self.remaining_units}/{self.total_units})>"
        )


class Application(Base):
    """BTO flat applications"""

    __tablename__ = "applications"

    application_id = Column(String, primary_key=True)
    applicant_nric = Column(String(9), nullable=False, index=True)
    project_name = Column(String, nullable=False, index=True)
    flat_type = Column(String, nullable=False)

    # Status tracking
    status = Column(String, nullable=False, default="pending", index=True)  # pending, successful, unsuccessful, booked
    withdrawal_requested = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, index=True)
    booked_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_applications_project_status", "project_name", "status"),
        Index("ix_applications_applicant", "applicant_nric", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.application_id}, project={self.project_name}, status={self.status})>"


class Enquiry(Base):
    """Applicant questions about a project and the staff reply"""

    __tablename__ = "enquiries"

    enquiry_id = Column(String, primary_key=True)
    applicant_nric = Column(String(9), nullable=False, index=True)
    project_name = Column(String, nullable=False, index=True)
    question = Column(Text, nullable=False)

    # Set once an assigned officer or the manager in charge answers
    reply = Column(Text, nullable=True)
    replied_by = Column(String(9), nullable=True)
    replied_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_enquiries_project_created", "project_name", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Enquiry(id={self.enquiry_id}, project={self.project_name}, answered={self.reply is not None})>"
