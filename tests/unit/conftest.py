"""Pytest configuration for unit tests."""

import pytest

from bdocore.core.filters import FieldDefinition, FilterTreeManager, default_field_definition


@pytest.fixture
def manager() -> FilterTreeManager:
    """Empty manager with an And root."""
    return FilterTreeManager()


@pytest.fixture
def product_fields() -> dict[str, FieldDefinition]:
    """Field definitions for a product listing."""
    return {
        "Price": default_field_definition("number"),
        "Name": default_field_definition("string"),
        "LaunchDate": default_field_definition("date"),
        "InStock": default_field_definition("boolean"),
    }
