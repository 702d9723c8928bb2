"""
Pydantic Schemas for Seed Data.

A seed file is a JSON document with four lists:

    {
      "managers":   [{"nric": "...", "name": "..."}],
      "applicants": [{"nric": "...", "name": "...", "age": 35, "marital_status": "Single"}],
      "officers":   [same shape as applicants],
      "projects":   [{"name": "...", "neighborhood": "...",
                      "open_date": "2025-02-15", "close_date": "2025-03-20",
                      "manager_id": "...", "officer_slot_capacity": 3,
                      "flats": [{"flat_type": "2-Room", "units": 2, "price": 350000}],
                      "officers": ["..."]}]
    }
"""

from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .types import (
    Applicant,
    FlatInventory,
    FlatType,
    Manager,
    MaritalStatus,
    Project,
)


NRIC_PATTERN = r"^[ST]\d{7}[A-Z]$"


# =============================================================
# PEOPLE
# =============================================================

class ManagerSeed(BaseModel):
    nric: str = Field(pattern=NRIC_PATTERN)
    name: str = Field(min_length=1)

    def to_domain(self) -> Manager:
        return Manager(nric=self.nric, name=self.name)


class ApplicantSeed(BaseModel):
    """Applicant or officer profile."""
    nric: str = Field(pattern=NRIC_PATTERN)
    name: str = Field(min_length=1)
    age: int = Field(ge=0, le=150)
    marital_status: str

    @field_validator("marital_status")
    @classmethod
    def known_marital_status(cls, value: str) -> str:
        return MaritalStatus.from_string(value).value

    def to_domain(self) -> Applicant:
        return Applicant(
            nric=self.nric,
            name=self.name,
            age=self.age,
            marital_status=MaritalStatus(self.marital_status),
        )


# =============================================================
# PROJECTS
# =============================================================

class FlatSeed(BaseModel):
    flat_type: str
    units: int = Field(ge=0)
    price: Decimal = Field(ge=0)

    @field_validator("flat_type")
    @classmethod
    def known_flat_type(cls, value: str) -> str:
        return FlatType.from_string(value).value


class ProjectSeed(BaseModel):
    name: str = Field(min_length=1)
    neighborhood: str
    open_date: date
    close_date: date
    manager_id: str
    officer_slot_capacity: int = Field(ge=0)
    visible: bool = True
    flats: List[FlatSeed] = Field(min_length=1)
    officers: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_window_and_slots(self) -> "ProjectSeed":
        if self.close_date <= self.open_date:
            raise ValueError("close_date must be after open_date")
        if len(self.officers) > self.officer_slot_capacity:
            raise ValueError("more officers than officer slots")
        return self

    def to_domain(self) -> Project:
        return Project(
            name=self.name,
            neighborhood=self.neighborhood,
            open_date=self.open_date,
            close_date=self.close_date,
            manager_id=self.manager_id,
            officer_slot_capacity=self.officer_slot_capacity,
            flat_inventory={
                FlatType(flat.flat_type): FlatInventory(units_remaining=flat.units, price=flat.price)
                for flat in self.flats
            },
            visible=self.visible,
            assigned_officer_ids=list(self.officers),
        )


# =============================================================
# SEED DOCUMENT
# =============================================================

class SeedData(BaseModel):
    """Whole seed document; cross-references are checked."""
    managers: List[ManagerSeed] = Field(default_factory=list)
    applicants: List[ApplicantSeed] = Field(default_factory=list)
    officers: List[ApplicantSeed] = Field(default_factory=list)
    projects: List[ProjectSeed] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_references(self) -> "SeedData":
        manager_ids = {m.nric for m in self.managers}
        officer_ids = {o.nric for o in self.officers}
        people = [p.nric for p in self.managers + self.applicants + self.officers]
        if len(people) != len(set(people)):
            raise ValueError("duplicate user id across managers, applicants and officers")

        names = [p.name for p in self.projects]
        if len(names) != len(set(names)):
            raise ValueError("duplicate project name")

        for project in self.projects:
            if project.manager_id not in manager_ids:
                raise ValueError(f"{project.name}: unknown manager {project.manager_id}")
            unknown = set(project.officers) - officer_ids
            if unknown:
                raise ValueError(f"{project.name}: unknown officers {sorted(unknown)}")
        return self
