"""
Executable entrypoint for the dashboard API.

Configure through environment variables (see ``supaguard.config``), e.g.:
  SUPAGUARD_PROXY (default: empty, requests go straight to the API)
  SUPAGUARD_STATE_FILE (default: ~/.supaguard/session.json)
  SUPAGUARD_ROW_LIMIT (default: 5000)
  GEMINI_API_KEY (optional, enables backup advice)
"""

from __future__ import annotations

from ..config import Settings
from ..session import Dashboard
from .app import create_app

dashboard = Dashboard(Settings.from_env())
app = create_app(dashboard, restore_session=True)
