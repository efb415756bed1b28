"""Shared fixtures for vizblocks tests."""

from __future__ import annotations

import polars as pl
import pytest

from vizblocks import Container, EngineSettings, create_engine
from vizblocks.events import EventHub


@pytest.fixture
def settings() -> EngineSettings:
    """Engine settings with a short debounce delay."""
    return EngineSettings(debounce_delay=0.02)


@pytest.fixture
def engine(settings):
    return create_engine(settings)


@pytest.fixture
def container() -> Container:
    """Desktop-sized host container."""
    return Container(width=960)


@pytest.fixture
def events() -> EventHub:
    return EventHub()


@pytest.fixture
def sales_rows() -> list[dict]:
    return [
        {"month": "Jan", "region": "US", "revenue": 100, "orders": 10},
        {"month": "Jan", "region": "EU", "revenue": 80, "orders": 8},
        {"month": "Feb", "region": "US", "revenue": 120, "orders": 12},
        {"month": "Feb", "region": "EU", "revenue": 60, "orders": 5},
        {"month": "Mar", "region": "US", "revenue": 150, "orders": 14},
        {"month": "Mar", "region": "EU", "revenue": 90, "orders": 9},
    ]


@pytest.fixture
def sales_df(sales_rows) -> pl.DataFrame:
    return pl.DataFrame(sales_rows)


@pytest.fixture
def sales_document(sales_rows) -> list[dict]:
    """Source, style, params and two charts."""
    return [
        {"type": "source", "name": "sales", "rows": sales_rows},
        {"type": "style", "name": "brand", "colors": ["#111111", "#222222", "#333333"]},
        {
            "type": "params",
            "name": "filters",
            "params": [
                {"id": "region", "type": "select", "options": ["US", "EU"], "default": "US"},
            ],
        },
        {
            "title": "Revenue by month",
            "source": "sales",
            "visualize": {"type": "bar", "columns": "month", "rows": "revenue", "style": "brand"},
            "aggregate": {
                "filters": {"rules": [{"field": "region", "operator": "=", "value": "$filters.region"}]},
                "dimensions": ["month"],
                "measures": [{"column": "revenue", "aggregation": "sum", "name": "revenue"}],
            },
            "layout": {"colSpan": 6},
        },
        {
            "source": "sales",
            "visualize": {"type": "pie", "columns": "region", "rows": "revenue"},
            "aggregate": {
                "dimensions": ["region"],
                "measures": [{"column": "revenue", "aggregation": "sum", "name": "revenue"}],
            },
            "layout": {"colSpan": 6},
        },
    ]
