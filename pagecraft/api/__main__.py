"""
pagecraft.api.__main__ — Entry point for ``python -m pagecraft.api``
=====================================================================

Wiring:
1. Load .env (secrets, ``DATABASE_URL``).
2. Load config.yaml (pool sizing, page-size ceilings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Serve the FastAPI app with uvicorn (blocking).

Run with::

    python -m pagecraft.api
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pagecraft")


def main() -> None:
    """Bootstrap and serve the Pagecraft API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2 + 3. Config and schema.  Imported late so JWT_SECRET from .env is
    # visible when pagecraft.api.deps validates it.
    from pagecraft.api.deps import get_config, get_engine
    from pagecraft.database.engine import init_db

    cfg = get_config()
    logger.info("Starting %s", cfg.site_name)
    init_db(get_engine())

    # 4. Serve.
    uvicorn.run(
        "pagecraft.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
