from .core import RegistryPublisher

__all__ = ["RegistryPublisher"]
