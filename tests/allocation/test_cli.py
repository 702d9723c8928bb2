"""
Tests for the administrative CLI.
"""

import json

import pytest

from allocation_engine.cli import main
from database.engine import dispose


SEED = {
    "managers": [{"nric": "S5678901G", "name": "Michael"}],
    "applicants": [
        {"nric": "S1234567A", "name": "John", "age": 35, "marital_status": "Single"},
    ],
    "officers": [
        {"nric": "T2109876H", "name": "Daniel", "age": 36, "marital_status": "Single"},
    ],
    "projects": [
        {
            "name": "Acacia Breeze",
            "neighborhood": "Yishun",
            "open_date": "2025-02-15",
            "close_date": "2025-03-20",
            "manager_id": "S5678901G",
            "officer_slot_capacity": 3,
            "flats": [
                {"flat_type": "2-Room", "units": 2, "price": 350000},
                {"flat_type": "3-Room", "units": 3, "price": 450000},
            ],
            "officers": ["T2109876H"],
        },
    ],
}


@pytest.fixture
def database_url(tmp_path):
    yield f"sqlite:///{tmp_path / 'housing.db'}"
    dispose()


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(SEED), encoding="utf-8")
    return path


def run(database_url, *argv):
    return main(["--database-url", database_url, "--log-level", "WARNING", *argv])


class TestCli:

    def test_init_db(self, database_url):
        assert run(database_url, "init-db") == 0

    def test_seed_then_list(self, database_url, seed_file, capsys):
        assert run(database_url, "seed", str(seed_file)) == 0
        assert "Seeded 1 projects" in capsys.readouterr().out

        assert run(database_url, "list-projects", "--flat-type", "3-Room") == 0
        out = capsys.readouterr().out
        assert "Acacia Breeze" in out
        assert "1 projects" in out

    def test_empty_report(self, database_url, seed_file, capsys):
        run(database_url, "seed", str(seed_file))
        capsys.readouterr()

        assert run(database_url, "report", "--marital-status", "married") == 0
        out = capsys.readouterr().out
        assert "Booking Report [Married]" in out
        assert "0 bookings" in out

    def test_invalid_seed_file(self, database_url, tmp_path, capsys):
        bad = dict(SEED, projects=[dict(SEED["projects"][0], manager_id="T0000000Z")])
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(bad), encoding="utf-8")

        assert run(database_url, "seed", str(path)) == 1
        assert "unknown manager" in capsys.readouterr().err

    def test_missing_seed_file(self, database_url, tmp_path):
        assert run(database_url, "seed", str(tmp_path / "absent.json")) == 1

    def test_unknown_flat_type_rejected(self, database_url):
        with pytest.raises(SystemExit):
            run(database_url, "list-projects", "--flat-type", "5-Room")
