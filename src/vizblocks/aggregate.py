"""Aggregation of chart data with polars.

The ``aggregate`` attribute of a chart describes a small query::

    aggregate:
      filters:
        combinator: and
        rules:
          - {field: region, operator: in, value: [US, EU]}
          - {field: total, operator: ">", value: 100}
      dimensions: [region]
      measures:
        - {column: revenue, aggregation: sum, name: total}
      sort:
        - {field: total, direction: desc}
      limit: 10

Rules on dimension fields filter rows before grouping; rules on measure
names filter the grouped result.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import polars as pl

from vizblocks.exceptions import SpecError

logger = logging.getLogger(__name__)


AGGREGATIONS = ("sum", "avg", "mean", "count", "min", "max", "first", "last")

OPERATORS = (
    "=", "==", "!=", ">", ">=", "<", "<=",
    "in", "not in", "contains", "not contains",
    "starts with", "ends with", "is null", "is not null",
)

# Operators that hold for a missing (null) field value
_NULL_TRUE_OPERATORS = frozenset({"!=", "not in", "not contains", "is null"})


def aggregate(data: pl.DataFrame, spec: Mapping[str, Any] | None) -> pl.DataFrame:
    """Apply an aggregation spec to a DataFrame.

    Args:
        data: Input rows.
        spec: The chart's ``aggregate`` mapping. None returns ``data`` as is.

    Returns:
        Filtered, grouped, sorted and limited rows.

    Raises:
        SpecError: If the aggregation is malformed.
    """
    if not spec:
        return data
    if not isinstance(spec, Mapping):
        raise SpecError("aggregate must be a mapping")

    dimensions = _as_list(spec.get("dimensions"), "dimensions")
    measures = [_normalize_measure(m) for m in _as_list(spec.get("measures"), "measures")]
    filters = spec.get("filters")

    measure_names = {m["name"] for m in measures}
    pre_filters, post_filters = split_filters(filters, measure_names)

    lf = data.lazy()
    if pre_filters:
        lf = lf.filter(build_filter(pre_filters, data.schema))

    if dimensions or measures:
        missing = [d for d in dimensions if d not in data.columns]
        if missing:
            raise SpecError(f"Unknown dimension field(s): {missing}. Available: {data.columns}")
        exprs = [_measure_expr(m, data.schema) for m in measures]
        if dimensions:
            lf = lf.group_by(dimensions, maintain_order=True).agg(exprs)
        else:
            lf = lf.select(exprs)

    result = lf.collect()

    if post_filters:
        result = result.filter(build_filter(post_filters, result.schema))

    sort = _as_list(spec.get("sort"), "sort")
    if sort:
        result = apply_sort(result, sort)

    limit = spec.get("limit")
    if limit is not None:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise SpecError(f"aggregate limit must be an integer, got {limit!r}") from None
        if limit > 0:
            result = result.head(limit)

    return result


def split_filters(
    filters: Mapping[str, Any] | None,
    measure_names: set[str],
) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Split filter rules into pre-grouping and post-grouping rule sets."""
    if not filters:
        return None, None
    if not isinstance(filters, Mapping):
        raise SpecError("aggregate filters must be a mapping")
    rules = filters.get("rules") or []
    if not isinstance(rules, list):
        raise SpecError("aggregate filters.rules must be a list")

    pre = [r for r in rules if not isinstance(r, Mapping) or r.get("field") not in measure_names]
    post = [r for r in rules if isinstance(r, Mapping) and r.get("field") in measure_names]
    combinator = filters.get("combinator", "and")
    return (
        {"combinator": combinator, "rules": pre} if pre else None,
        {"combinator": combinator, "rules": post} if post else None,
    )


def build_filter(filters: Mapping[str, Any], schema: Mapping[str, pl.DataType]) -> pl.Expr:
    """Build a boolean polars expression from a combinator and rules."""
    combinator = str(filters.get("combinator", "and")).lower()
    exprs = [build_rule(rule, schema) for rule in filters.get("rules", [])]
    if not exprs:
        return pl.lit(True)
    if combinator == "or":
        return pl.any_horizontal(exprs)
    return pl.all_horizontal(exprs)


def build_rule(rule: Mapping[str, Any], schema: Mapping[str, pl.DataType]) -> pl.Expr:
    """Build the expression for a single ``{field, operator, value}`` rule."""
    if not isinstance(rule, Mapping):
        raise SpecError(f"Filter rule must be a mapping, got {type(rule).__name__}")
    field_name = rule.get("field")
    operator = str(rule.get("operator", "=")).lower()
    value = rule.get("value")

    if operator not in OPERATORS:
        logger.warning("Unknown filter operator: %s", operator)
        return pl.lit(True)

    if field_name not in schema:
        logger.warning("Filter field '%s' not found, treating values as null", field_name)
        return pl.lit(operator in _NULL_TRUE_OPERATORS)

    col = pl.col(field_name)
    dtype = schema[field_name]

    if operator == "is null":
        return col.is_null()
    if operator == "is not null":
        return col.is_not_null()

    if operator in ("in", "not in"):
        if not isinstance(value, list):
            return pl.lit(False)
        values = [_coerce_literal(dtype, v) for v in value]
        expr = col.is_in(values)
        expr = ~expr if operator == "not in" else expr
    elif operator in ("contains", "not contains", "starts with", "ends with"):
        text = col.cast(pl.Utf8)
        needle = str(value)
        if operator == "starts with":
            expr = text.str.starts_with(needle)
        elif operator == "ends with":
            expr = text.str.ends_with(needle)
        else:
            expr = text.str.contains(needle, literal=True)
            expr = ~expr if operator == "not contains" else expr
    else:
        literal = _coerce_literal(dtype, value)
        if operator in ("=", "=="):
            expr = col == literal
        elif operator == "!=":
            expr = col != literal
        elif operator == ">":
            expr = col > literal
        elif operator == ">=":
            expr = col >= literal
        elif operator == "<":
            expr = col < literal
        else:
            expr = col <= literal

    return expr.fill_null(operator in _NULL_TRUE_OPERATORS)


def apply_sort(data: pl.DataFrame, sort: Sequence[Mapping[str, Any]]) -> pl.DataFrame:
    """Sort by one or more ``{field, direction}`` entries, nulls last."""
    fields, descending = [], []
    for entry in sort:
        if isinstance(entry, str):
            entry = {"field": entry}
        field_name = entry.get("field")
        if field_name not in data.columns:
            logger.warning("Sort field '%s' not found, skipping", field_name)
            continue
        fields.append(field_name)
        descending.append(str(entry.get("direction", "asc")).lower() == "desc")
    if not fields:
        return data
    return data.sort(fields, descending=descending, nulls_last=True, maintain_order=True)


def _normalize_measure(measure: Any) -> dict[str, Any]:
    if not isinstance(measure, Mapping):
        raise SpecError(f"Measure must be a mapping, got {type(measure).__name__}")
    aggregation = str(measure.get("aggregation", "sum")).lower()
    if aggregation not in AGGREGATIONS:
        raise SpecError(
            f"Unknown aggregation: {aggregation}. Must be one of: {', '.join(AGGREGATIONS)}"
        )
    column = measure.get("column")
    if aggregation != "count" and not isinstance(column, str):
        raise SpecError(f"Measure with aggregation '{aggregation}' must have a 'column'")
    name = measure.get("name") or (f"{column}_{aggregation}" if column else aggregation)
    return {"column": column, "aggregation": aggregation, "name": name}


def _measure_expr(measure: Mapping[str, Any], schema: Mapping[str, pl.DataType]) -> pl.Expr:
    aggregation = measure["aggregation"]
    name = measure["name"]
    column = measure["column"]

    if aggregation == "count":
        return pl.len().alias(name)
    if column not in schema:
        raise SpecError(f"Unknown measure column: '{column}'. Available: {list(schema)}")

    col = pl.col(column)
    if aggregation == "sum":
        return col.cast(pl.Float64, strict=False).fill_null(0).sum().alias(name)
    if aggregation in ("avg", "mean"):
        return col.cast(pl.Float64, strict=False).fill_null(0).mean().fill_null(0).alias(name)
    if aggregation == "min":
        return col.min().alias(name)
    if aggregation == "max":
        return col.max().alias(name)
    if aggregation == "first":
        return col.first().alias(name)
    return col.last().alias(name)


def _coerce_literal(dtype: pl.DataType, value: Any) -> Any:
    """Convert string literals (often parameter values) to numeric columns' type."""
    if isinstance(value, str) and dtype.is_numeric():
        try:
            return float(value) if dtype.is_float() or "." in value else int(value)
        except ValueError:
            return value
    return value


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise SpecError(f"aggregate {name} must be a list")
    return value
