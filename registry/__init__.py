from .defaults import create_default_registries, resolve_trigger_type
from .registry import Registry, RegistryItem

__all__ = ["Registry", "RegistryItem", "create_default_registries", "resolve_trigger_type"]
