from __future__ import annotations

from unittest.mock import MagicMock

from supaguard.insight import (
    OFFLINE_MESSAGE,
    UNAVAILABLE_MESSAGE,
    build_prompt,
    generate_backup_advice,
)
from supaguard.models import Project, Table

PROJECT = Project(id="ref-alpha", name="alpha")
TABLES = [Table(id=1000, name="users"), Table(id=1001, name="orders")]


def make_factory(text=None, error=None):
    factory = MagicMock()
    generate = factory.return_value.models.generate_content
    if error is not None:
        generate.side_effect = error
    else:
        generate.return_value = MagicMock(text=text)
    return factory


def test_prompt_names_project_and_tables():
    prompt = build_prompt(PROJECT, TABLES)

    assert "alpha" in prompt
    assert "users, orders" in prompt


def test_advice_uses_model_response():
    factory = make_factory("  Schedule nightly dumps of users.  ")

    text = generate_backup_advice(PROJECT, TABLES, api_key="k", model="m", client_factory=factory)

    assert text == "Schedule nightly dumps of users."
    factory.assert_called_once_with(api_key="k")
    kwargs = factory.return_value.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "m"
    assert kwargs["contents"] == build_prompt(PROJECT, TABLES)


def test_advice_without_key_is_offline():
    factory = make_factory("unused")

    assert generate_backup_advice(PROJECT, TABLES, api_key=None, client_factory=factory) == OFFLINE_MESSAGE
    factory.assert_not_called()


def test_advice_failure_is_offline():
    factory = make_factory(error=RuntimeError("quota exceeded"))

    assert generate_backup_advice(PROJECT, TABLES, api_key="k", client_factory=factory) == OFFLINE_MESSAGE


def test_empty_advice_is_unavailable():
    factory = make_factory("")

    assert generate_backup_advice(PROJECT, TABLES, api_key="k", client_factory=factory) == UNAVAILABLE_MESSAGE
