from enum import Enum
import logging

from pydantic_settings import BaseSettings
from rich.logging import RichHandler


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    env: Env = Env.local
    db_url: str = "sqlite+aiosqlite:///mealsync.db"
    state_blob_key: str = "state.json"
    api_token: str | None = None
    log_level: str = "INFO"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
