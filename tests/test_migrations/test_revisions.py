"""
Tests for the Alembic revision chain
"""
from pathlib import Path

import pytest
from alembic.config import Config
from alembic.script import ScriptDirectory

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def script():
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "migrations"))
    return ScriptDirectory.from_config(config)


def test_single_linear_history(script):
    assert list(script.get_heads()) == ["e5af7b4c8dbc"]
    assert list(script.get_bases()) == ["3f1a9c2e7b01"]

    revisions = list(script.walk_revisions())
    assert len(revisions) == 10
    for revision in revisions:
        assert not revision.is_merge_point


def test_row_level_security_is_applied_last(script):
    head = script.get_revision("e5af7b4c8dbc")
    assert head.down_revision == "d49e6a3b7cab"
    assert "row level security" in head.doc.lower()
