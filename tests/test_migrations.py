from __future__ import annotations

from pathlib import Path

import allure

from brew_buddy.catalog.storage.alembic_runner import current_revision, head_revision, upgrade_head

pytestmark = [
    allure.epic("Catalog Sweep"),
    allure.feature("Schema Migrations"),
]


def test_fresh_database_is_upgraded_to_head(tmp_path: Path) -> None:
    db_path = tmp_path / "fresh.db"

    assert current_revision(db_path) is None

    upgrade_head(db_path)

    assert current_revision(db_path) == head_revision(db_path) == "20261004_0001"


def test_upgrade_is_repeatable(tmp_path: Path) -> None:
    db_path = tmp_path / "repeat.db"

    upgrade_head(db_path)
    upgrade_head(db_path)

    assert current_revision(db_path) == "20261004_0001"
