"""hs-lookup - Vietnamese HS and US HTS tariff lookup service."""

from .version import __version__

__all__ = ["__version__"]
