"""
Runtime configuration.

Settings are read from environment variables:
  SUPAGUARD_API_BASE      management API base URL (default: https://api.supabase.com/v1)
  SUPAGUARD_PROXY         forwarding proxy prefix used when none is given at sign-in
  SUPAGUARD_TIMEOUT       request timeout in seconds, 0 disables (default: 60)
  SUPAGUARD_ROW_LIMIT     rows read per table during data export (default: 5000)
  SUPAGUARD_STATE_FILE    where the token and proxy are persisted (default: ~/.supaguard/session.json)
  SUPAGUARD_READ_ONLY     refuse mutating SQL from the console (default: false)
  SUPAGUARD_LOG_SQL       log SQL text (default: true)
  GEMINI_API_KEY/API_KEY  key for the backup advice call
  SUPAGUARD_INSIGHT_MODEL model used for backup advice
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .client import API_BASE_URL
from .export import DEFAULT_ROW_LIMIT

logger = logging.getLogger(__name__)

TOKEN_KEY = "sb_token"
PROXY_KEY = "sb_proxy"
DEFAULT_INSIGHT_MODEL = "gemini-2.5-flash"


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _default_state_file() -> Path:
    return Path.home() / ".supaguard" / "session.json"


@dataclass
class Settings:
    api_base_url: str = API_BASE_URL
    default_proxy: str = ""
    timeout: Optional[float] = 60.0
    row_limit: int = DEFAULT_ROW_LIMIT
    state_file: Path = field(default_factory=_default_state_file)
    read_only: bool = False
    log_sql_text: bool = True
    gemini_api_key: Optional[str] = None
    insight_model: str = DEFAULT_INSIGHT_MODEL

    @classmethod
    def from_env(cls) -> "Settings":
        timeout = float(os.getenv("SUPAGUARD_TIMEOUT", "60"))
        state_file = os.getenv("SUPAGUARD_STATE_FILE")
        return cls(
            api_base_url=os.getenv("SUPAGUARD_API_BASE", API_BASE_URL),
            default_proxy=os.getenv("SUPAGUARD_PROXY", ""),
            timeout=timeout if timeout > 0 else None,
            row_limit=int(os.getenv("SUPAGUARD_ROW_LIMIT", str(DEFAULT_ROW_LIMIT))),
            state_file=Path(state_file).expanduser() if state_file else _default_state_file(),
            read_only=_env_bool("SUPAGUARD_READ_ONLY", False),
            log_sql_text=_env_bool("SUPAGUARD_LOG_SQL", True),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None,
            insight_model=os.getenv("SUPAGUARD_INSIGHT_MODEL", DEFAULT_INSIGHT_MODEL),
        )


@dataclass(frozen=True)
class Credentials:
    token: str
    proxy_url: str = ""


class CredentialStore:
    """
    Persists the access token and proxy URL between runs as a small JSON file.

    A missing, unreadable or incomplete file means there is no saved session.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Credentials]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None
        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        if not token:
            return None
        return Credentials(token=token, proxy_url=data.get(PROXY_KEY) or "")

    def save(self, credentials: Credentials) -> None:
        logger.info(f"Saving session to {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {TOKEN_KEY: credentials.token, PROXY_KEY: credentials.proxy_url}
        self.path.write_text(json.dumps(payload), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.warning(f"Could not restrict permissions on {self.path}: {e}")

    def clear(self) -> None:
        logger.info(f"Clearing saved session {self.path}")
        self.path.unlink(missing_ok=True)
