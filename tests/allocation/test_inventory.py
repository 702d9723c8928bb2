"""
Tests for Project Inventory.
"""

from datetime import date
from decimal import Decimal

import pytest

from allocation_engine.errors import (
    ErrorCode,
    InsufficientInventory,
    NoSlotsAvailable,
    NotFound,
)
from allocation_engine.inventory import ProjectInventory
from allocation_engine.tables import Tables
from allocation_engine.types import FlatInventory, FlatType, Project


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def project():
    return Project(
        name="Acacia Breeze",
        neighborhood="Yishun",
        open_date=date(2025, 2, 15),
        close_date=date(2025, 3, 20),
        manager_id="S5678901G",
        officer_slot_capacity=2,
        flat_inventory={
            FlatType.TWO_ROOM: FlatInventory(units_remaining=1, price=350000),
        },
    )


@pytest.fixture
def inventory(project):
    tables = Tables()
    tables.load(projects=[project])
    return ProjectInventory(tables)


# ============================================================
# WINDOW TESTS
# ============================================================

class TestApplicationWindow:
    """open_date <= as_of < close_date, and visible."""

    def test_open_on_first_day(self, inventory, project):
        assert inventory.is_open_for_application(project, date(2025, 2, 15))

    def test_closed_on_close_date(self, inventory, project):
        assert not inventory.is_open_for_application(project, date(2025, 3, 20))

    def test_closed_before_open(self, inventory, project):
        assert not inventory.is_open_for_application(project, date(2025, 2, 14))

    def test_hidden_project_closed(self, inventory, project):
        project.visible = False
        assert not inventory.is_open_for_application(project, date(2025, 3, 1))


# ============================================================
# UNIT TESTS
# ============================================================

class TestUnits:

    def test_units_remaining(self, inventory, project):
        assert inventory.units_remaining(project, FlatType.TWO_ROOM) == 1
        assert inventory.units_remaining(project, FlatType.THREE_ROOM) == 0

    def test_price_of(self, inventory, project):
        assert inventory.price_of(project, FlatType.TWO_ROOM) == Decimal("350000")

    def test_price_of_missing_flat_type(self, inventory, project):
        with pytest.raises(NotFound):
            inventory.price_of(project, FlatType.THREE_ROOM)

    def test_reserve_decrements(self, inventory, project):
        result = inventory.reserve_unit(project, FlatType.TWO_ROOM)

        assert result.is_success
        assert result.value == 0
        assert project.flat_inventory[FlatType.TWO_ROOM].units_remaining == 0

    def test_reserve_exhausted_fails_without_change(self, inventory, project):
        inventory.reserve_unit(project, FlatType.TWO_ROOM)
        result = inventory.reserve_unit(project, FlatType.TWO_ROOM)

        assert not result.is_success
        assert result.error_code == ErrorCode.INSUFFICIENT_INVENTORY
        assert project.flat_inventory[FlatType.TWO_ROOM].units_remaining == 0

    def test_reserve_unoffered_flat_type(self, inventory, project):
        result = inventory.reserve_unit(project, FlatType.THREE_ROOM)
        assert isinstance(result.error, InsufficientInventory)

    def test_release_restores(self, inventory, project):
        inventory.reserve_unit(project, FlatType.TWO_ROOM)
        result = inventory.release_unit(project, FlatType.TWO_ROOM)

        assert result.is_success
        assert inventory.units_remaining(project, FlatType.TWO_ROOM) == 1

    def test_negative_units_rejected(self):
        with pytest.raises(ValueError):
            FlatInventory(units_remaining=-1, price=1)


# ============================================================
# OFFICER SLOT TESTS
# ============================================================

class TestOfficerSlots:

    def test_remaining_slots(self, inventory, project):
        assert inventory.remaining_officer_slots(project) == 2
        inventory.add_officer(project, "T2109876H")
        assert inventory.remaining_officer_slots(project) == 1

    def test_add_same_officer_twice(self, inventory, project):
        inventory.add_officer(project, "T2109876H")
        inventory.add_officer(project, "T2109876H")
        assert project.assigned_officer_ids == ["T2109876H"]

    def test_add_when_full(self, inventory, project):
        inventory.add_officer(project, "T2109876H")
        inventory.add_officer(project, "S6543210I")

        with pytest.raises(NoSlotsAvailable):
            inventory.add_officer(project, "T1234567J")
        assert len(project.assigned_officer_ids) == project.officer_slot_capacity
