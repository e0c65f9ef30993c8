#!/usr/bin/env python3
"""
Catalog file formats.

Supported formats:
- PO: GNU gettext .po/.pot text catalogs
- LCAT: compiled single-locale binary catalogs
- LPAK: compact multi-locale packs
- MO: GNU gettext compiled catalogs
"""

from .base import (
    CatalogFormat,
    FormatRegistry,
    PlaceholderPattern,
    PLACEHOLDER_PATTERNS,
)
from .po import PoHandler
from .binary_catalog import BinaryCatalog, BinaryCatalogEncoder, BinaryCatalogFormat
from .compact_pack import CompactPack, CompactPackEncoder, CompactPackFormat
from .mo import MoEncoder, MoFile, MoFormat

# Register handlers (order matters for extension conflicts)
FormatRegistry.register(PoHandler)
FormatRegistry.register(BinaryCatalogFormat)
FormatRegistry.register(CompactPackFormat)
FormatRegistry.register(MoFormat)

__all__ = [
    'CatalogFormat',
    'FormatRegistry',
    'PlaceholderPattern',
    'PLACEHOLDER_PATTERNS',
    'PoHandler',
    'BinaryCatalog',
    'BinaryCatalogEncoder',
    'BinaryCatalogFormat',
    'CompactPack',
    'CompactPackEncoder',
    'CompactPackFormat',
    'MoEncoder',
    'MoFile',
    'MoFormat',
]
