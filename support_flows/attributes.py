"""
Attribute Registry.

Read-only lookup of the tenant's custom attribute definitions. The
definitions are supplied by the external attribute API; the flow core never
creates or deletes them.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .config import AttributeModel
from .models import AttributeDefinition

logger = logging.getLogger(__name__)


def _parse_definition(raw: Dict[str, Any]) -> AttributeDefinition:
    """Convert a camelCase or snake_case dictionary to AttributeDefinition."""
    model = raw.get("attributeModel", raw.get("attribute_model")) or "contact"
    key = str(raw.get("key") or "").strip()
    if not key:
        raise ValueError("Attribute definition missing required 'key'")
    return AttributeDefinition(
        id=str(raw.get("id") or key),
        display_name=str(raw.get("displayName", raw.get("display_name")) or key),
        key=key,
        description=str(raw.get("description") or ""),
        attribute_model=AttributeModel(model),
    )


class AttributeRegistry:
    """
    Custom attribute definitions indexed by (model, key).
    """

    def __init__(self, definitions: Iterable[AttributeDefinition] = ()):
        self._by_key: Dict[Tuple[AttributeModel, str], AttributeDefinition] = {}
        for definition in definitions:
            index = (definition.attribute_model, definition.key)
            if index in self._by_key:
                logger.warning(
                    f"Duplicate {definition.attribute_model.value} attribute key: {definition.key}"
                )
            self._by_key[index] = definition

    @classmethod
    def from_dicts(cls, raw: Iterable[Dict[str, Any]]) -> "AttributeRegistry":
        """Build a registry from the attribute API's JSON payload."""
        return cls(_parse_definition(item) for item in raw)

    def get(
        self, key: str, model: AttributeModel = AttributeModel.CONTACT
    ) -> Optional[AttributeDefinition]:
        return self._by_key.get((AttributeModel(model), key))

    def has(self, key: str, model: Optional[AttributeModel] = None) -> bool:
        """Check if a key is defined, optionally restricted to one model."""
        if model is not None:
            return (AttributeModel(model), key) in self._by_key
        return any(k == key for _, k in self._by_key)

    def keys(self, model: Optional[AttributeModel] = None) -> Set[str]:
        return {
            k for m, k in self._by_key if model is None or m == AttributeModel(model)
        }

    def list_all(self, model: Optional[AttributeModel] = None) -> List[AttributeDefinition]:
        return [
            d
            for d in self._by_key.values()
            if model is None or d.attribute_model == AttributeModel(model)
        ]

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)


__all__ = ["AttributeRegistry"]
