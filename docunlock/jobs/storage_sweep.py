import logging
from typing import Optional

from sqlmodel import Session

from docunlock.config import get_settings
from docunlock.database import get_session
from docunlock.services.r2_client import R2Storage, build_r2_storage
from docunlock.services.storage_tiering import cleanup_orphaned_objects, migrate_to_object_store
from docunlock.utils.log_setup import setup_logging

logger = logging.getLogger(__name__)


def run_storage_sweep(session: Optional[Session] = None, store: Optional[R2Storage] = None) -> dict:
    """Migrate every inline section to R2, then delete orphaned objects."""
    if store is None:
        store = build_r2_storage(get_settings())

    if session is None:
        with next(get_session()) as session:
            return run_storage_sweep(session, store)

    migration = migrate_to_object_store(session, store)
    cleanup = cleanup_orphaned_objects(session, store)

    logger.info(
        f"Storage sweep: migrated={migration['migrated_count']} "
        f"errors={migration['error_count']} cleaned={cleanup['cleaned']}"
    )
    return {"migration": migration, "cleanup": cleanup}


if __name__ == "__main__":
    setup_logging(get_settings().log_level)
    run_storage_sweep()
