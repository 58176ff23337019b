"""Alembic revision bookkeeping for the health endpoints."""
from pathlib import Path
from typing import Any, Optional

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection

ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "alembic"


def alembic_config(database_url: Optional[str] = None) -> Config:
    """Alembic config pointing at the bundled scripts, independent of the cwd."""
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    if database_url:
        config.set_main_option("sqlalchemy.url", database_url)
    return config


def migration_status(connection: Connection) -> dict[str, Any]:
    """Applied / pending revisions for the database behind ``connection``.

    Revisions are listed oldest first. A database built with create_all and
    never stamped reports every revision as pending.
    """
    script = ScriptDirectory.from_config(alembic_config())
    current = MigrationContext.configure(connection).get_current_revision()

    available = [rev.revision for rev in reversed(list(script.walk_revisions()))]
    applied = []
    if current is not None:
        applied = [rev.revision for rev in reversed(list(script.iterate_revisions(current, "base")))]
    pending = [rev for rev in available if rev not in applied]

    return {
        "current": current,
        "head": script.get_current_head(),
        "applied": applied,
        "available": available,
        "pending": pending,
        "total": len(available),
        "applied_count": len(applied),
        "pending_count": len(pending),
        "up_to_date": not pending,
    }
