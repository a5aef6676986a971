"""Seed the database with the bundled center directory."""
from __future__ import annotations

import logging

from ..store.database import SessionFactory, init_db
from ..store.registry import seed_centers
from ..util.logs import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    init_db()
    with SessionFactory() as session:
        added = seed_centers(session)
        session.commit()
    logger.info("Seeded %d center(s)", added)


if __name__ == "__main__":
    main()
