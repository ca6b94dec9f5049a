"""Unit tests for the attribute registry."""

import pytest

from support_flows.attributes import AttributeRegistry
from support_flows.config import AttributeModel


class TestAttributeRegistry:
    """Tests for AttributeRegistry."""

    def test_lookup_by_model(self, attributes):
        """Keys are scoped to their model."""
        assert attributes.get("plan").display_name == "Plan"
        assert attributes.get("plan", AttributeModel.CONVERSATION) is None
        assert attributes.get("order_total", "conversation").key == "order_total"

    def test_has_and_keys(self, attributes):
        """Membership can be checked across or within models."""
        assert attributes.has("order_total")
        assert not attributes.has("order_total", AttributeModel.CONTACT)
        assert attributes.keys() == {"plan", "order_total"}
        assert attributes.keys(AttributeModel.CONTACT) == {"plan"}
        assert [d.key for d in attributes.list_all(AttributeModel.CONVERSATION)] == ["order_total"]

    def test_same_key_in_both_models(self):
        """A key may exist once per model."""
        registry = AttributeRegistry.from_dicts(
            [
                {"key": "tier", "attributeModel": "contact"},
                {"key": "tier", "attribute_model": "conversation"},
            ]
        )
        assert len(registry) == 2
        assert {d.attribute_model for d in registry} == set(AttributeModel)

    def test_from_dicts_defaults(self):
        """Sparse payloads fall back to the key and the contact model."""
        registry = AttributeRegistry.from_dicts([{"key": " vip ", "displayName": "VIP"}])
        definition = registry.get("vip")
        assert definition.id == "vip"
        assert definition.display_name == "VIP"
        assert definition.to_dict()["attributeModel"] == "contact"

    def test_missing_key(self):
        """Definitions need a key."""
        with pytest.raises(ValueError):
            AttributeRegistry.from_dicts([{"displayName": "Nameless"}])

    def test_duplicates_keep_last(self):
        """A repeated (model, key) pair replaces the earlier one."""
        registry = AttributeRegistry.from_dicts(
            [{"key": "plan", "displayName": "Old"}, {"key": "plan", "displayName": "New"}]
        )
        assert len(registry) == 1
        assert registry.get("plan").display_name == "New"
