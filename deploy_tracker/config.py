# deploy_tracker/config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DB_PATH = "deployment_tracker.db"
GITHUB_STATS_URL = "https://github-stats.mybluemix.net/api/v1/stats"
REPUTATION_CACHE_TTL = 21600
REPUTATION_TIMEOUT = 10.0
AUTHORIZED_EMAIL_SUFFIX = ".ibm.com"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    db_path: Optional[str] = DB_PATH
    api_key: str = "blah"
    github_stats_api_key: str = ""
    github_stats_url: str = GITHUB_STATS_URL
    github_stats_timeout: float = REPUTATION_TIMEOUT
    reputation_cache_ttl: int = REPUTATION_CACHE_TTL
    local: bool = False
    authorized_email_suffix: str = AUTHORIZED_EMAIL_SUFFIX

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment, after loading a local .env if present."""
        load_dotenv()
        db_path = os.getenv("DEPLOY_TRACKER_DB", DB_PATH).strip()
        return cls(
            db_path=db_path or None,
            api_key=os.getenv("API_KEY", "blah"),
            github_stats_api_key=os.getenv("GITHUB_STATS_API_KEY", "").strip(),
            github_stats_url=os.getenv("GITHUB_STATS_URL", GITHUB_STATS_URL),
            github_stats_timeout=float(os.getenv("GITHUB_STATS_TIMEOUT", REPUTATION_TIMEOUT)),
            reputation_cache_ttl=int(os.getenv("REPUTATION_CACHE_TTL", REPUTATION_CACHE_TTL)),
            local=_env_flag("DEPLOY_TRACKER_LOCAL"),
            authorized_email_suffix=os.getenv("AUTHORIZED_EMAIL_SUFFIX", AUTHORIZED_EMAIL_SUFFIX),
        )
