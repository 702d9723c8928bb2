"""
Allocation Engine - Receipts and Booking Reports.

============================================================
PURPOSE
============================================================
Read-only views over booked applications.

- Receipt: issued by an officer for one booked application
- BookingReport: every booking, optionally narrowed by project,
  marital status, flat type and age range

Rendering is left to the presentation layer.

============================================================
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Tuple

from .errors import InvalidTransition
from .tables import Tables
from .types import (
    Application,
    ApplicationStatus,
    FlatType,
    MaritalStatus,
    Receipt,
    new_id,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingReportRow:
    """One booked flat."""

    application_id: str
    applicant_nric: str
    applicant_name: str
    applicant_age: int
    marital_status: MaritalStatus
    flat_type: FlatType
    project_name: str
    neighborhood: str
    price: Decimal


@dataclass(frozen=True)
class BookingReport:
    """Immutable, filterable list of bookings."""

    title: str
    rows: Tuple[BookingReportRow, ...]

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def total_value(self) -> Decimal:
        return sum((row.price for row in self.rows), Decimal("0"))

    def filter_by_marital_status(self, status: MaritalStatus) -> "BookingReport":
        return replace(
            self,
            title=f"{self.title} [{status.value}]",
            rows=tuple(r for r in self.rows if r.marital_status == status),
        )

    def filter_by_flat_type(self, flat_type: FlatType) -> "BookingReport":
        return replace(
            self,
            title=f"{self.title} [{flat_type.value}]",
            rows=tuple(r for r in self.rows if r.flat_type == flat_type),
        )

    def filter_by_age_range(self, min_age: int, max_age: int) -> "BookingReport":
        if min_age > max_age:
            raise ValueError("min_age must not exceed max_age")
        return replace(
            self,
            title=f"{self.title} [age {min_age}-{max_age}]",
            rows=tuple(r for r in self.rows if min_age <= r.applicant_age <= max_age),
        )


class ReportGenerator:
    """Builds receipts and booking reports from the tables."""

    def __init__(self, tables: Tables):
        self._tables = tables

    def receipt_for(self, application: Application) -> Receipt:
        """
        Raises:
            InvalidTransition: If the application is not booked
        """
        if application.status != ApplicationStatus.BOOKED:
            raise InvalidTransition(
                f"{application.application_id} is {application.status.value}; "
                f"receipts are only issued for booked flats",
                application_id=application.application_id,
            )
        row = self._row_for(application)
        receipt = Receipt(
            receipt_id=new_id("RCPT"),
            application_id=row.application_id,
            applicant_nric=row.applicant_nric,
            applicant_name=row.applicant_name,
            applicant_age=row.applicant_age,
            marital_status=row.marital_status,
            flat_type=row.flat_type,
            project_name=row.project_name,
            neighborhood=row.neighborhood,
            price=row.price,
            booked_by=application.booked_by or "",
            booked_at=application.booked_at or application.updated_at,
        )
        logger.info(f"Receipt {receipt.receipt_id} issued for {application.application_id}")
        return receipt

    def booking_report(
        self,
        project_name: Optional[str] = None,
        marital_status: Optional[MaritalStatus] = None,
        flat_type: Optional[FlatType] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
    ) -> BookingReport:
        booked = [
            a for a in self._tables.applications.values()
            if a.status == ApplicationStatus.BOOKED
            and (project_name is None or a.project_id == project_name)
        ]
        title = f"Booking Report - {project_name}" if project_name else "Booking Report"
        report = BookingReport(title=title, rows=tuple(self._row_for(a) for a in booked))

        if marital_status is not None:
            report = report.filter_by_marital_status(marital_status)
        if flat_type is not None:
            report = report.filter_by_flat_type(flat_type)
        if min_age is not None or max_age is not None:
            report = report.filter_by_age_range(
                min_age if min_age is not None else 0,
                max_age if max_age is not None else 200,
            )
        return report

    def _row_for(self, application: Application) -> BookingReportRow:
        applicant = self._tables.get_applicant(application.applicant_id)
        project = self._tables.get_project(application.project_id)
        inventory = project.flat_inventory.get(application.flat_type)
        return BookingReportRow(
            application_id=application.application_id,
            applicant_nric=applicant.nric,
            applicant_name=applicant.name,
            applicant_age=applicant.age,
            marital_status=applicant.marital_status,
            flat_type=application.flat_type,
            project_name=project.name,
            neighborhood=project.neighborhood,
            price=inventory.price if inventory else Decimal("0"),
        )
