"""Chart publishing."""

from .publisher import Publisher

__all__ = ["Publisher"]
