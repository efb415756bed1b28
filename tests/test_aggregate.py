"""Tests for chart data aggregation."""

import polars as pl
import pytest

from vizblocks.aggregate import aggregate, build_rule, split_filters
from vizblocks.exceptions import SpecError


class TestAggregate:
    """Tests for grouping, measures, sort and limit."""

    def test_no_spec_returns_data(self, sales_df):
        assert aggregate(sales_df, None) is sales_df

    def test_group_by_keeps_first_appearance_order(self, sales_df):
        result = aggregate(sales_df, {
            "dimensions": ["month"],
            "measures": [{"column": "revenue", "aggregation": "sum", "name": "total"}],
        })

        assert result.get_column("month").to_list() == ["Jan", "Feb", "Mar"]
        assert result.get_column("total").to_list() == [180.0, 180.0, 240.0]

    def test_measure_default_name(self, sales_df):
        result = aggregate(sales_df, {
            "dimensions": ["region"],
            "measures": [{"column": "orders", "aggregation": "avg"}],
        })

        assert "orders_avg" in result.columns

    def test_count(self, sales_df):
        result = aggregate(sales_df, {
            "dimensions": ["region"],
            "measures": [{"aggregation": "count", "name": "n"}],
        })

        assert result.get_column("n").to_list() == [3, 3]

    def test_measures_without_dimensions(self, sales_df):
        result = aggregate(sales_df, {
            "measures": [
                {"column": "revenue", "aggregation": "max", "name": "best"},
                {"column": "revenue", "aggregation": "min", "name": "worst"},
            ],
        })

        assert result.height == 1
        assert result.row(0, named=True) == {"best": 150, "worst": 60}

    def test_sort_and_limit(self, sales_df):
        result = aggregate(sales_df, {
            "dimensions": ["month"],
            "measures": [{"column": "revenue", "aggregation": "sum", "name": "total"}],
            "sort": [{"field": "total", "direction": "desc"}],
            "limit": 1,
        })

        assert result.get_column("month").to_list() == ["Mar"]

    def test_sort_and_limit_without_grouping(self, sales_df):
        result = aggregate(sales_df, {"sort": [{"field": "revenue"}], "limit": 2})

        assert result.get_column("revenue").to_list() == [60, 80]

    def test_unknown_aggregation(self, sales_df):
        with pytest.raises(SpecError, match="Unknown aggregation"):
            aggregate(sales_df, {"measures": [{"column": "revenue", "aggregation": "median"}]})

    def test_unknown_dimension(self, sales_df):
        with pytest.raises(SpecError, match="dimension"):
            aggregate(sales_df, {"dimensions": ["country"]})

    def test_invalid_limit(self, sales_df):
        with pytest.raises(SpecError, match="limit"):
            aggregate(sales_df, {"limit": "many"})


class TestFilters:
    """Tests for filter rules."""

    def test_pre_filter_on_dimension(self, sales_df):
        result = aggregate(sales_df, {
            "filters": {"rules": [{"field": "region", "operator": "=", "value": "US"}]},
            "dimensions": ["month"],
            "measures": [{"column": "revenue", "aggregation": "sum", "name": "total"}],
        })

        assert result.get_column("total").to_list() == [100.0, 120.0, 150.0]

    def test_post_filter_on_measure(self, sales_df):
        result = aggregate(sales_df, {
            "filters": {"rules": [{"field": "total", "operator": ">", "value": 200}]},
            "dimensions": ["month"],
            "measures": [{"column": "revenue", "aggregation": "sum", "name": "total"}],
        })

        assert result.get_column("month").to_list() == ["Mar"]

    def test_split_filters(self):
        pre, post = split_filters(
            {"combinator": "or", "rules": [{"field": "region"}, {"field": "total"}]},
            {"total"},
        )

        assert pre == {"combinator": "or", "rules": [{"field": "region"}]}
        assert post == {"combinator": "or", "rules": [{"field": "total"}]}

    def test_or_combinator(self, sales_df):
        result = aggregate(sales_df, {
            "filters": {
                "combinator": "or",
                "rules": [
                    {"field": "revenue", "operator": ">=", "value": 150},
                    {"field": "revenue", "operator": "<", "value": 70},
                ],
            },
        })

        assert sorted(result.get_column("revenue").to_list()) == [60, 150]

    def test_in_operator(self, sales_df):
        result = aggregate(sales_df, {
            "filters": {"rules": [{"field": "month", "operator": "in", "value": ["Jan", "Mar"]}]},
        })

        assert set(result.get_column("month").to_list()) == {"Jan", "Mar"}

    def test_string_value_coerced_for_numeric_column(self, sales_df):
        result = aggregate(sales_df, {
            "filters": {"rules": [{"field": "orders", "operator": ">", "value": "10"}]},
        })

        assert sorted(result.get_column("orders").to_list()) == [12, 14]

    def test_contains_and_starts_with(self, sales_df):
        contains = aggregate(sales_df, {
            "filters": {"rules": [{"field": "month", "operator": "contains", "value": "a"}]},
        })
        starts = aggregate(sales_df, {
            "filters": {"rules": [{"field": "month", "operator": "starts with", "value": "F"}]},
        })

        assert set(contains.get_column("month").to_list()) == {"Jan", "Mar"}
        assert set(starts.get_column("month").to_list()) == {"Feb"}

    def test_null_handling(self):
        df = pl.DataFrame({"name": ["a", None, "c"]})

        is_null = aggregate(df, {"filters": {"rules": [{"field": "name", "operator": "is null"}]}})
        not_equal = aggregate(df, {"filters": {"rules": [{"field": "name", "operator": "!=", "value": "a"}]}})

        assert is_null.height == 1
        assert not_equal.get_column("name").to_list() == [None, "c"]

    def test_missing_field_treated_as_null(self, sales_df):
        equal = aggregate(sales_df, {"filters": {"rules": [{"field": "country", "operator": "=", "value": "x"}]}})
        not_equal = aggregate(sales_df, {"filters": {"rules": [{"field": "country", "operator": "!=", "value": "x"}]}})

        assert equal.height == 0
        assert not_equal.height == sales_df.height

    def test_unknown_operator_keeps_rows(self, sales_df):
        schema = sales_df.schema
        result = sales_df.filter(build_rule({"field": "revenue", "operator": "~", "value": 1}, schema))

        assert result.height == sales_df.height
