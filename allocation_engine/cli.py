"""
Allocation Engine - CLI.

============================================================
RESPONSIBILITY
============================================================
Administrative command line for the housing database.

- Creates the schema
- Seeds users and projects from a JSON file
- Lists projects and prints booking reports
- Configuration comes from the environment (.env honoured),
  overridable per invocation

============================================================
USAGE
============================================================
python -m allocation_engine.cli init-db
python -m allocation_engine.cli seed data.json
python -m allocation_engine.cli list-projects --flat-type 3-Room
python -m allocation_engine.cli report --marital-status Married --min-age 30

============================================================
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from auth.service import AuthenticationService
from core.clock import get_clock
from core.exceptions import HousingException
from database.engine import initialize_database
from database.persistence import SqlCredentialStore, SqlRecordStore

from .config import EngineConfig
from .projects import ProjectFilter
from .schemas import SeedData
from .service import HousingService
from .types import AssignmentStatus, FlatType, MaritalStatus, OfficerAssignment


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bto-housing",
        description="BTO housing allocation administration",
    )

    parser.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="SQLAlchemy database URL (default: HOUSING_DATABASE_URL or sqlite:///bto_housing.db)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: HOUSING_LOG_LEVEL or INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    seed = commands.add_parser("seed", help="Load users and projects from a JSON file")
    seed.add_argument("path", type=Path, help="Seed file")

    listing = commands.add_parser("list-projects", help="List every project")
    listing.add_argument("--neighborhood", type=str)
    listing.add_argument("--flat-type", type=FlatType.from_string, metavar="FLAT_TYPE")

    report = commands.add_parser("report", help="Print the booking report")
    report.add_argument("--project", type=str)
    report.add_argument("--marital-status", type=MaritalStatus.from_string, metavar="STATUS")
    report.add_argument("--flat-type", type=FlatType.from_string, metavar="FLAT_TYPE")
    report.add_argument("--min-age", type=int)
    report.add_argument("--max-age", type=int)

    return parser


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Environment configuration with CLI overrides applied."""
    config = EngineConfig.from_env()
    if args.database_url:
        config = replace(config, persistence=replace(config.persistence, database_url=args.database_url))
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    return config


# ============================================================
# COMMANDS
# ============================================================

def seed_database(store: SqlRecordStore, auth: AuthenticationService, seed: SeedData) -> None:
    """Save seed records; pre-assigned officers get approved assignments."""
    store.save_managers(m.to_domain() for m in seed.managers)
    store.save_applicants(a.to_domain() for a in seed.applicants + seed.officers)
    store.save_officer_ids(o.nric for o in seed.officers)

    projects = [p.to_domain() for p in seed.projects]
    store.save_projects(projects)

    now = get_clock().now()
    store.save_officer_assignments(
        OfficerAssignment(
            officer_id=officer_id,
            project_id=project.name,
            status=AssignmentStatus.APPROVED,
            requested_at=now,
            decided_at=now,
        )
        for project in projects
        for officer_id in project.assigned_officer_ids
    )

    auth.seed_default_passwords(
        [m.nric for m in seed.managers] + [a.nric for a in seed.applicants + seed.officers]
    )


def list_projects(service: HousingService, args: argparse.Namespace) -> None:
    projects = service.catalog.list_projects(
        ProjectFilter(neighborhood=args.neighborhood, flat_type=args.flat_type)
    )
    for project in projects:
        flats = ", ".join(
            f"{ft.value}: {inv.units_remaining} @ {inv.price}"
            for ft, inv in project.flat_inventory.items()
        )
        hidden = "" if project.visible else " [hidden]"
        print(
            f"{project.name:20s} {project.neighborhood:15s} "
            f"{project.open_date} to {project.close_date}  {flats}{hidden}"
        )
    print(f"\n{len(projects)} projects")


def print_report(service: HousingService, args: argparse.Namespace) -> None:
    report = service.reports.booking_report(
        project_name=args.project,
        marital_status=args.marital_status,
        flat_type=args.flat_type,
        min_age=args.min_age,
        max_age=args.max_age,
    )
    print(report.title)
    print("=" * 60)
    for row in report.rows:
        print(
            f"{row.applicant_nric}  {row.applicant_name:20s} {row.applicant_age:3d}  "
            f"{row.marital_status.value:8s} {row.flat_type.value:7s} "
            f"{row.project_name:20s} {row.price}"
        )
    print(f"\n{len(report)} bookings, total {report.total_value}")


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except HousingException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    try:
        initialize_database(config.persistence)
        store = SqlRecordStore()

        if args.command == "init-db":
            return 0

        service = HousingService.create(store, config)

        if args.command == "seed":
            seed = SeedData.model_validate(json.loads(args.path.read_text(encoding="utf-8")))
            auth = AuthenticationService(service.tables, SqlCredentialStore(), config.auth)
            seed_database(store, auth, seed)
            print(f"Seeded {len(seed.projects)} projects from {args.path}")
        elif args.command == "list-projects":
            list_projects(service, args)
        elif args.command == "report":
            print_report(service, args)
        return 0

    except (ValidationError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except HousingException as e:
        logger.log(e.severity.log_level, f"Command failed: {e.to_log_format()}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
