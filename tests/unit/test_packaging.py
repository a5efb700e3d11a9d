"""Tests for the project metadata in pyproject.toml."""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


@pytest.fixture(scope="module")
def project() -> dict:
    with PYPROJECT.open("rb") as fh:
        return tomllib.load(fh)["project"]


class TestProjectMetadata:
    def test_no_design_document_as_long_description(self, project):
        assert "readme" not in project

    def test_runtime_dependencies(self, project):
        names = {dep.split(">")[0].split("<")[0].split("=")[0] for dep in project["dependencies"]}
        assert names == {
            "pydantic", "pydantic-settings", "python-json-logger", "PyYAML", "watchdog", "APScheduler"
        }

    def test_console_entry_point(self, project):
        assert project["scripts"]["ticketguard"] == "ticketguard.main:main"
