"""Configuration values sourced from environment variables."""

import os
from typing import Final

from src.enums import Dialect

_dialect = os.getenv(key="DDL_DIALECT", default="postgresql")


DIALECT: Final[Dialect] = Dialect(_dialect)
SNAPSHOT_DIR: Final[str] = os.getenv(key="SNAPSHOT_DIR", default="migrations")
STRICT_PLAN: Final[bool] = bool(os.getenv(key="STRICT_PLAN", default="False").upper() == "TRUE")
LOG_LEVEL: Final[str] = os.getenv(key="LOG_LEVEL", default="INFO")
LOGGER_NAME: Final[str] = os.getenv(key="LOGGER_NAME", default="ddl-engine")
LOG_COLOUR_ENABLED: Final[bool] = bool(
    os.getenv(key="LOG_COLOUR_ENABLED", default="True").upper() == "TRUE"
)
