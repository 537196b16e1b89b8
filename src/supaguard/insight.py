from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from google import genai

from .config import DEFAULT_INSIGHT_MODEL
from .models import Project, Table

_logger = logging.getLogger("supaguard.insight")

OFFLINE_MESSAGE = "Gemini AI offline."
UNAVAILABLE_MESSAGE = "Insight unavailable."


def build_prompt(project: Project, tables: Iterable[Table]) -> str:
    table_names = ", ".join(table.name for table in tables)
    return (
        f"Analyze the project {project.name} ({table_names}). "
        "Give one short backup tip in English (at most 12 words)."
    )


def generate_backup_advice(
    project: Project,
    tables: Iterable[Table],
    *,
    api_key: Optional[str],
    model: str = DEFAULT_INSIGHT_MODEL,
    client_factory: Callable[..., genai.Client] = genai.Client,
) -> str:
    """One best-effort call for a one-line backup tip; never raises, never retries."""
    if not api_key:
        _logger.info("No Gemini API key configured; skipping backup advice")
        return OFFLINE_MESSAGE
    prompt = build_prompt(project, tables)
    try:
        client = client_factory(api_key=api_key)
        response = client.models.generate_content(model=model, contents=prompt)
        text = (getattr(response, "text", None) or "").strip()
        return text or UNAVAILABLE_MESSAGE
    except Exception as exc:  # any SDK or transport failure falls back
        _logger.warning("Backup advice failed | project=%s | error=%s", project.id, exc)
        return OFFLINE_MESSAGE
