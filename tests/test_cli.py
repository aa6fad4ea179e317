"""Profession administration commands of scripts/run_pipeline.py."""

import importlib.util
import uuid
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import FakeDatabase, make_profession

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_pipeline.py"

runner = CliRunner()


@pytest.fixture(scope="module")
def cli():
    spec = importlib.util.spec_from_file_location("run_pipeline", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def go_dev():
    return make_profession("Go developer", "golang")


@pytest.fixture
def db(cli, monkeypatch, go_dev):
    db = FakeDatabase([go_dev])
    monkeypatch.setattr(cli, "get_database_wrapper", lambda **kwargs: db)
    return db


def test_add_profession(cli, db):
    result = runner.invoke(cli.app, ["add-profession", "Python developer", "--query", "python"])

    assert result.exit_code == 0
    added = [p for p in db.professions if p.name == "Python developer"]
    assert len(added) == 1 and added[0].vacancy_query == "python"


def test_add_profession_defaults_query_to_name(cli, db):
    result = runner.invoke(cli.app, ["add-profession", "DevOps"])

    assert result.exit_code == 0
    assert db.professions[-1].vacancy_query == "DevOps"


@pytest.mark.parametrize("args", [["add-profession", "   "], ["add-profession", "SRE", "--query", " "]])
def test_add_profession_rejects_blank_input(cli, db, args):
    result = runner.invoke(cli.app, args)

    assert result.exit_code == 1
    assert "cannot be empty" in result.output
    assert len(db.professions) == 1


def test_add_duplicate_profession_exits_with_error(cli, db):
    result = runner.invoke(cli.app, ["add-profession", "Go developer", "--query", "go"])

    assert result.exit_code == 1
    assert "already exists" in result.output
    assert len(db.professions) == 1


def test_deactivate_removes_profession_from_runs(cli, db, go_dev):
    result = runner.invoke(cli.app, ["deactivate", str(go_dev.id)])

    assert result.exit_code == 0
    assert db.get_active_professions() == []
    assert db.get_profession(go_dev.id).name == "Go developer"


def test_activate_restores_profession(cli, db, go_dev):
    db.set_profession_active(go_dev.id, False)

    result = runner.invoke(cli.app, ["activate", str(go_dev.id)])

    assert result.exit_code == 0
    assert [p.id for p in db.get_active_professions()] == [go_dev.id]


@pytest.mark.parametrize("profession_id", ["not-a-uuid", str(uuid.uuid4())])
def test_deactivate_unknown_profession(cli, db, profession_id):
    result = runner.invoke(cli.app, ["deactivate", profession_id])

    assert result.exit_code == 1


def test_update_profession_query(cli, db, go_dev):
    result = runner.invoke(cli.app, ["update-profession", str(go_dev.id), "--query", "golang OR go"])

    assert result.exit_code == 0
    updated = db.get_profession(go_dev.id)
    assert updated.vacancy_query == "golang OR go"
    assert updated.name == "Go developer"


def test_update_profession_to_taken_name(cli, db, go_dev):
    db.add_profession("Python developer", "python")

    result = runner.invoke(cli.app, ["update-profession", str(go_dev.id), "--name", "Python developer"])

    assert result.exit_code == 1
    assert "already exists" in result.output
    assert db.get_profession(go_dev.id).name == "Go developer"


def test_update_profession_requires_a_change(cli, db, go_dev):
    result = runner.invoke(cli.app, ["update-profession", str(go_dev.id)])

    assert result.exit_code == 1


def test_professions_all_lists_inactive(cli, db, go_dev):
    db.set_profession_active(go_dev.id, False)

    active = runner.invoke(cli.app, ["professions"])
    everything = runner.invoke(cli.app, ["professions", "--all"])

    assert "Go developer" not in active.output
    assert "Go developer" in everything.output and "(inactive)" in everything.output
