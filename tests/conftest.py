"""Pytest configuration for all tests."""

from datetime import datetime
from typing import Iterator

import pytest

from bdocore.core.config import get_settings
from bdocore.core.expressions import EvaluationContext, Evaluator
from bdocore.core.logging import clear_context

FIXED_NOW = datetime(2024, 3, 15, 14, 30, 0)


@pytest.fixture(autouse=True)
def _reset_settings() -> Iterator[None]:
    """Drop cached settings and logging context between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-03-15 14:30 local time."""
    return lambda: FIXED_NOW


@pytest.fixture
def current_user() -> dict:
    return {
        "Id": "user_1",
        "Email": "jane@example.com",
        "FirstName": "Jane",
        "LastName": "Doe",
    }


@pytest.fixture
def make_context(fixed_clock, current_user):
    """Build an EvaluationContext with the fixed clock and test user."""

    def _make(form_values: dict | None = None) -> EvaluationContext:
        return EvaluationContext.create(form_values or {}, current_user, fixed_clock)

    return _make


@pytest.fixture
def evaluator() -> Evaluator:
    return Evaluator()
