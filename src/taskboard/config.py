"""
Runtime settings read from the environment.

    TASKBOARD_PORT=8080 TASKBOARD_DB_PATH=/tmp/board.sqlite python -m taskboard
"""

import os
from pathlib import Path

from pydantic import BaseModel

PACKAGE_DIR = Path(__file__).parent
STATIC_DIR = PACKAGE_DIR / "public"
TEMPLATES_DIR = PACKAGE_DIR / "templates"


class Settings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    db_path: Path = Path("database.sqlite")
    static_dir: Path = STATIC_DIR
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.db_path}"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from 'TASKBOARD_*' variables, falling back to the field defaults."""
        defaults = cls()
        return cls(
            host=os.getenv("TASKBOARD_HOST", defaults.host),
            port=int(os.getenv("TASKBOARD_PORT", str(defaults.port))),
            db_path=Path(os.getenv("TASKBOARD_DB_PATH", str(defaults.db_path))),
            static_dir=Path(os.getenv("TASKBOARD_STATIC_DIR", str(defaults.static_dir))),
            log_level=os.getenv("TASKBOARD_LOG_LEVEL", defaults.log_level).upper(),
        )
