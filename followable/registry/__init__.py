from .entity_registry import EntityLookup, EntityRegistry, get_entity_registry
from .type_aliases import TypeAliasResolver

__all__ = [
    "EntityLookup",
    "EntityRegistry",
    "TypeAliasResolver",
    "get_entity_registry",
]
