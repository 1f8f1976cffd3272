from pydantic import BaseModel, ConfigDict
from datetime import date

from ..domain.entities import Project
from ..domain.enums import FlatType


class FlatTypeInventory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    flat_type: FlatType
    total_units: int
    remaining_units: int
    price: float


class ProjectResponse(BaseModel):
    """Project details with its unit inventory"""

    name: str
    neighborhood: str
    opening_date: date
    closing_date: date
    manager_in_charge: str
    visible: bool
    officer_slots: int
    officers: list[str]
    flat_types: list[FlatTypeInventory]

    @classmethod
    def from_domain(cls, project: Project) -> "ProjectResponse":
        return cls(
            name=project.name,
            neighborhood=project.neighborhood,
            opening_date=project.opening_date,
            closing_date=project.closing_date,
            manager_in_charge=project.manager_in_charge,
            visible=project.visible,
            officer_slots=project.officer_slots,
            officers=project.officers,
            flat_types=[
                FlatTypeInventory.model_validate(cell)
                for cell in sorted(project.flat_types.values(), key=lambda c: c.flat_type.rooms)
            ],
        )


class ProjectList(BaseModel):
    projects: list[ProjectResponse]
    total: int
