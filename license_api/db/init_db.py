import logging
from license_api.db.session import engine
from license_api.db.base import Base

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all tables that do not exist yet."""
    import license_api.db.models  # noqa: F401  registers models on Base.metadata

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")
