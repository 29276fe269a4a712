"""
Alembic migration runner.

Called at startup when RUN_MIGRATIONS=1, or by hand:
    python -m license_api.db.migrate [revision]
"""
import logging
import sys
from pathlib import Path
from alembic.config import Config
from alembic import command
from sqlalchemy import create_engine, text

from license_api.core import config as app_config

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"

# Serialises migrations across workers starting at the same time
ADVISORY_LOCK_ID = 48151623


def alembic_config(database_url: str = None) -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("sqlalchemy.url", database_url or app_config.DATABASE_URL)
    return cfg


def run_migrations(revision: str = "head", database_url: str = None):
    """
    Upgrade the schema to `revision`.

    On Postgres the upgrade runs under an advisory lock held on its own
    connection; other databases migrate without locking.
    """
    database_url = database_url or app_config.DATABASE_URL
    logger.info(f"Running alembic upgrade {revision}")

    engine = create_engine(database_url, pool_pre_ping=True)
    lock_conn = None
    try:
        if engine.dialect.name == "postgresql":
            lock_conn = engine.connect()
            lock_conn.execute(text("SELECT pg_advisory_lock(:id)"), {"id": ADVISORY_LOCK_ID})
            lock_conn.commit()
            logger.info("Migration lock acquired")

        command.upgrade(alembic_config(database_url), revision)
        logger.info(f"Schema at {revision}")
    except Exception:
        logger.exception("Migration failed")
        raise
    finally:
        if lock_conn is not None:
            lock_conn.execute(text("SELECT pg_advisory_unlock(:id)"), {"id": ADVISORY_LOCK_ID})
            lock_conn.commit()
            lock_conn.close()
        engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_migrations(sys.argv[1] if len(sys.argv) > 1 else "head")
