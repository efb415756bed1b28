"""Tests for the document registry."""

import pytest

from vizblocks.base import BlockKind
from vizblocks.exceptions import SpecError
from vizblocks.registry import Registry, RegistryKeyError


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def filters() -> dict:
    return {
        "params": [
            {"id": "region", "type": "select", "options": ["US", "EU"], "default": "US"},
            {"id": "top_n", "type": "number", "default": 5},
        ]
    }


class TestRegistration:
    """Tests for registering sources, styles and configs."""

    def test_register_and_get_source(self, registry):
        registry.register(BlockKind.SOURCE, "sales", {"rows": [{"a": 1}]})

        assert registry.get("source", "sales") == {"rows": [{"a": 1}]}
        assert registry.has(BlockKind.SOURCE, "sales")

    def test_last_write_wins(self, registry):
        registry.register("source", "sales", {"rows": [{"a": 1}]})
        registry.register("source", "sales", {"rows": [{"a": 2}]})

        assert registry.get("source", "sales")["rows"] == [{"a": 2}]
        assert registry.names("source") == ["sales"]

    def test_stored_value_is_a_copy(self, registry):
        value = {"rows": [{"a": 1}]}
        registry.register("source", "sales", value)
        value["rows"].append({"a": 2})

        assert registry.get("source", "sales")["rows"] == [{"a": 1}]

    def test_invalid_registration_leaves_previous_entry(self, registry):
        registry.register("style", "brand", {"colors": ["#000"]})

        with pytest.raises(SpecError):
            registry.register("style", "brand", {"unrelated": True})

        assert registry.get("style", "brand") == {"colors": ["#000"]}

    def test_chart_kind_rejected(self, registry):
        with pytest.raises(SpecError):
            registry.register("chart", "c", {})

    def test_missing_name_rejected(self, registry):
        with pytest.raises(SpecError, match="name"):
            registry.register("source", "", {"rows": []})

    def test_inline_source_requires_rows(self, registry):
        with pytest.raises(SpecError, match="rows"):
            registry.register("source", "sales", {"provider": "inline"})

    def test_non_inline_source_is_not_checked_for_rows(self, registry):
        registry.register("source", "remote", {"provider": "http", "url": "https://example.com"})

        assert registry.has("source", "remote")

    def test_unnamed_configs_are_kept_in_order(self, registry):
        registry.register("config", None, {"theme": {"background": "#fff", "grid": {"color": "#eee"}}})
        registry.register("config", None, {"theme": {"background": "#000"}})

        merged = registry.merged_config()

        assert merged["theme"]["background"] == "#000"
        assert merged["theme"]["grid"] == {"color": "#eee"}
        assert registry.names("config") == ["@config_0", "@config_1"]

    def test_unnamed_config_does_not_collide_with_named(self, registry):
        registry.register("config", "config_0", {"theme": {"background": "#aaa"}})
        registry.register("config", None, {"theme": {"foreground": "#bbb"}})

        assert registry.names("config") == ["config_0", "@config_0"]
        assert registry.merged_config()["theme"] == {"background": "#aaa", "foreground": "#bbb"}

    def test_reserved_name_prefix(self, registry):
        with pytest.raises(SpecError, match="may not start with"):
            registry.register("config", "@config_0", {"theme": {}})

        assert registry.names("config") == []

    def test_reregistered_config_merges_last(self, registry):
        registry.register("config", "a", {"theme": {"background": "#aaa"}})
        registry.register("config", "b", {"theme": {"background": "#bbb"}})
        registry.register("config", "a", {"theme": {"background": "#ccc"}})

        assert registry.merged_config()["theme"]["background"] == "#ccc"

    def test_get_unknown_lists_available(self, registry):
        registry.register("source", "sales", {"rows": []})

        with pytest.raises(RegistryKeyError) as exc_info:
            registry.get("source", "costs")

        assert exc_info.value.available == ["sales"]
        assert "sales" in str(exc_info.value)

    def test_find_returns_none(self, registry):
        assert registry.find("style", "missing") is None

    def test_stats(self, registry, filters):
        registry.register("source", "sales", {"rows": []})
        registry.register("params", "filters", filters)

        assert registry.stats() == {"sources": 1, "styles": 0, "configs": 0, "params": 1}


class TestParams:
    """Tests for parameter bindings and subscriptions."""

    def test_defaults_are_published(self, registry, filters):
        registry.register("params", "filters", filters)

        assert registry.get_param("filters.region") == "US"
        assert registry.param_values() == {"filters.region": "US", "filters.top_n": 5}
        assert registry.param_values(scope="filters") == {"region": "US", "top_n": 5}

    def test_invalid_param_type(self, registry):
        with pytest.raises(SpecError, match="invalid type"):
            registry.register("params", "p", {"params": [{"id": "x", "type": "slider"}]})

    def test_select_requires_options(self, registry):
        with pytest.raises(SpecError, match="options"):
            registry.register("params", "p", {"params": [{"id": "x", "type": "select"}]})

    def test_duplicate_ids_rejected(self, registry):
        definition = {"params": [{"id": "x", "type": "text"}, {"id": "x", "type": "number"}]}

        with pytest.raises(SpecError, match="twice"):
            registry.register("params", "p", definition)

    def test_subscribers_notified_in_order(self, registry, filters):
        registry.register("params", "filters", filters)
        calls = []
        registry.subscribe("filters.region", lambda name, value: calls.append(("first", value)))
        registry.subscribe("filters.region", lambda name, value: calls.append(("second", value)))

        changed = registry.set_param("filters.region", "EU")

        assert changed is True
        assert calls == [("first", "EU"), ("second", "EU")]

    def test_unchanged_value_does_not_notify(self, registry, filters):
        registry.register("params", "filters", filters)
        calls = []
        registry.subscribe("filters.region", lambda name, value: calls.append(value))

        assert registry.set_param("filters.region", "US") is False
        assert calls == []

    def test_failing_subscriber_does_not_stop_others(self, registry, filters):
        registry.register("params", "filters", filters)
        calls = []

        def broken(name, value):
            raise RuntimeError("boom")

        registry.subscribe("filters.region", broken)
        registry.subscribe("filters.region", lambda name, value: calls.append(value))

        registry.set_param("filters.region", "EU")

        assert calls == ["EU"]

    def test_set_undeclared_param(self, registry):
        with pytest.raises(RegistryKeyError):
            registry.set_param("filters.region", "EU")

    def test_subscribe_before_declaration(self, registry, filters):
        calls = []
        registry.subscribe("filters.region", lambda name, value: calls.append(value))
        registry.register("params", "filters", filters)

        registry.set_param("filters.region", "EU")

        assert calls == ["EU"]

    def test_unsubscribe(self, registry, filters):
        registry.register("params", "filters", filters)
        calls = []

        def callback(name, value):
            calls.append(value)

        registry.subscribe("filters.region", callback)
        registry.unsubscribe("filters.region", callback)
        registry.set_param("filters.region", "EU")

        assert calls == []
        assert registry.subscriber_count("filters.region") == 0

    def test_reregistration_keeps_subscribers_and_resets_value(self, registry, filters):
        registry.register("params", "filters", filters)
        calls = []
        registry.subscribe("filters.region", lambda name, value: calls.append(value))
        registry.set_param("filters.region", "EU")

        registry.register("params", "filters", filters)

        assert registry.get_param("filters.region") == "US"
        assert registry.subscriber_count("filters.region") == 1

    def test_clear(self, registry, filters):
        registry.register("params", "filters", filters)
        registry.register("source", "sales", {"rows": []})

        registry.clear()

        assert registry.param_values() == {}
        assert registry.names("source") == []
