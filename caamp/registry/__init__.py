"""Provider registry for caamp."""

from caamp.registry.providers import ProviderRegistry, RegistryError

__all__ = ["ProviderRegistry", "RegistryError"]
