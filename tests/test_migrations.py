"""
Tests that the Alembic migrations build the schema the models expect.
"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from stepboard.config import settings
from stepboard.models import Base, load_all_models

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def test_upgrade_matches_models(tmp_path, monkeypatch):
    db_path = tmp_path / "migrated.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{db_path}")

    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    command.upgrade(config, "head")

    load_all_models()
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        for table in Base.metadata.sorted_tables:
            columns = {column["name"] for column in inspector.get_columns(table.name)}
            assert columns == set(table.columns.keys()), table.name
    finally:
        engine.dispose()
