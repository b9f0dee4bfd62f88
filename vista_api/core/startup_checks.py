from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from vista_api.core import config

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"


def validate_environment() -> None:
    """Refuse to boot production with settings that only make sense locally."""
    if not config.IS_PROD:
        return

    if config.DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", STARTUP_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")

    missing = [
        name
        for name in ("JWT_SECRET_KEY", "JWT_REFRESH_SECRET_KEY")
        if not getattr(config, name)
    ]
    if missing:
        logger.critical("%s missing secrets=%s", STARTUP_PREFIX, ",".join(missing))
        raise RuntimeError(f"Missing required secrets: {', '.join(missing)}")

    if config.JWT_SECRET_KEY == config.JWT_REFRESH_SECRET_KEY:
        logger.critical("%s access and refresh secrets must differ", STARTUP_PREFIX)
        raise RuntimeError("JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must differ")


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if config.IS_TEST or config.DATABASE_URL.startswith("sqlite"):
        logger.info("%s skipped migration check env=%s", STARTUP_PREFIX, config.ENV_NORMALIZED)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", STARTUP_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    script_directory = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    expected_heads = set(script_directory.get_heads())

    with engine.connect() as connection:
        if "alembic_version" not in inspect(connection).get_table_names():
            logger.critical("%s alembic_version table missing", STARTUP_PREFIX)
            raise RuntimeError("Database has no migration state")
        current_rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()

    current_heads = {row[0] for row in current_rows if row and row[0]}
    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            STARTUP_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified", STARTUP_PREFIX)
