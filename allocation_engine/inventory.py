"""
Allocation Engine - Project Inventory.

============================================================
PURPOSE
============================================================
Owns per-project flat-type unit counts, prices, the application
window and the officer-slot capacity.

MUTATIONS:
- reserve_unit: booking takes one unit
- release_unit: an approved withdrawal of a booking returns it
- add_officer: an approved officer takes one slot

INVARIANTS:
- units_remaining >= 0 for every flat type
- len(assigned_officer_ids) <= officer_slot_capacity

All mutations run under the project's lock and check before
they change anything.

============================================================
"""

import logging
from datetime import date
from decimal import Decimal

from .errors import (
    InsufficientInventory,
    NoSlotsAvailable,
    NotFound,
    OperationResult,
    returns_result,
)
from .tables import Tables
from .types import FlatType, Project


logger = logging.getLogger(__name__)


class ProjectInventory:
    """Unit and officer-slot bookkeeping for projects."""

    def __init__(self, tables: Tables):
        self._tables = tables

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    @staticmethod
    def is_open_for_application(project: Project, as_of: date) -> bool:
        """Visible and as_of within [open_date, close_date)."""
        return project.visible and project.open_date <= as_of < project.close_date

    @staticmethod
    def units_remaining(project: Project, flat_type: FlatType) -> int:
        """Units left of a flat type; 0 if the project does not offer it."""
        inventory = project.flat_inventory.get(flat_type)
        return inventory.units_remaining if inventory else 0

    @staticmethod
    def price_of(project: Project, flat_type: FlatType) -> Decimal:
        inventory = project.flat_inventory.get(flat_type)
        if inventory is None:
            raise NotFound(
                f"{project.name} does not offer {flat_type.value}",
                project_id=project.name,
                flat_type=flat_type.value,
            )
        return inventory.price

    @staticmethod
    def remaining_officer_slots(project: Project) -> int:
        return project.officer_slot_capacity - len(project.assigned_officer_ids)

    # --------------------------------------------------------
    # MUTATIONS
    # --------------------------------------------------------

    @returns_result
    def reserve_unit(self, project: Project, flat_type: FlatType) -> int:
        """
        Take one unit of a flat type.

        Returns:
            Units remaining after the reservation

        Fails with InsufficientInventory when none remain.
        """
        return self.take_unit(project, flat_type)

    @returns_result
    def release_unit(self, project: Project, flat_type: FlatType) -> int:
        """
        Return one unit of a flat type (compensation for a withdrawn booking).

        Returns:
            Units remaining after the release
        """
        return self.return_unit(project, flat_type)

    def take_unit(self, project: Project, flat_type: FlatType) -> int:
        """Raising form of reserve_unit, for use inside other operations."""
        with self._tables.project_lock(project.name):
            inventory = project.flat_inventory.get(flat_type)
            if inventory is None or inventory.units_remaining <= 0:
                raise InsufficientInventory(
                    f"No {flat_type.value} units left in {project.name}",
                    project_id=project.name,
                    flat_type=flat_type.value,
                )
            inventory.units_remaining -= 1
            logger.info(
                f"Reserved {flat_type.value} in {project.name}: "
                f"{inventory.units_remaining} remaining"
            )
            return inventory.units_remaining

    def return_unit(self, project: Project, flat_type: FlatType) -> int:
        """Raising form of release_unit."""
        with self._tables.project_lock(project.name):
            inventory = project.flat_inventory.get(flat_type)
            if inventory is None:
                raise NotFound(
                    f"{project.name} does not offer {flat_type.value}",
                    project_id=project.name,
                    flat_type=flat_type.value,
                )
            inventory.units_remaining += 1
            logger.info(
                f"Released {flat_type.value} in {project.name}: "
                f"{inventory.units_remaining} remaining"
            )
            return inventory.units_remaining

    def add_officer(self, project: Project, officer_id: str) -> None:
        """
        Occupy one officer slot.

        Raises:
            NoSlotsAvailable: If every slot is taken
        """
        with self._tables.project_lock(project.name):
            if officer_id in project.assigned_officer_ids:
                return
            if self.remaining_officer_slots(project) <= 0:
                raise NoSlotsAvailable(
                    f"{project.name} has no officer slots left",
                    project_id=project.name,
                    capacity=project.officer_slot_capacity,
                )
            project.assigned_officer_ids.append(officer_id)
            logger.info(
                f"Officer {officer_id} added to {project.name} "
                f"({len(project.assigned_officer_ids)}/{project.officer_slot_capacity})"
            )
