from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_BUNDLED_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass(frozen=True)
class RecommenderConfig:
    redis_url: str = os.getenv("REDIS_URL", "")
    redis_timeout: float = float(os.getenv("RECS_REDIS_TIMEOUT", "0.5"))
    cache_ttl: int = int(os.getenv("RECS_CACHE_TTL", "1800"))  # 30 minutes
    cache_prefix: str = os.getenv("RECS_CACHE_PREFIX", "recommendations:")
    data_dir: Path = Path(os.getenv("RECS_DATA_DIR", str(_BUNDLED_DATA_DIR)))
    database_url: str = os.getenv("RECS_DATABASE_URL", "")
    session_secret: str = os.getenv("SESSION_SECRET", "menu-recs-secret-change-in-production")


DEFAULT_CONFIG = RecommenderConfig()
