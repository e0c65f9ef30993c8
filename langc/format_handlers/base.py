#!/usr/bin/env python3
"""
Base classes for catalog file formats.

CatalogFormat is the abstract base class that every catalog file format
(PO/POT text, compiled binary catalogs, compact packs) implements so the CLI
can detect and describe any artifact of the pipeline. PlaceholderPattern
describes format placeholders that translations must preserve.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass
class PlaceholderPattern:
    """Pattern definition for placeholder detection."""
    name: str
    pattern: str  # Regex pattern

    def find_all(self, text: str) -> list[str]:
        """Find all placeholders matching this pattern."""
        return [m.group(0) for m in re.finditer(self.pattern, text)]


# Placeholder styles found in gettext catalogs
PLACEHOLDER_PATTERNS = {
    'message_format': PlaceholderPattern('message_format', r'\{\d+\}'),  # {0}, {1}
    'printf': PlaceholderPattern('printf', r'%[\d$]*[sd]'),              # %s, %1$s, %d
    'printf_named': PlaceholderPattern('printf_named', r'%\((\w+)\)s'),  # %(name)s
}


class CatalogFormat(ABC):
    """
    Abstract base class for catalog file formats.

    Each format knows its name, its file extensions and how to summarize the
    content of a file for reporting.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> list[str]:
        """List of file extensions this format uses (without dot)."""
        pass

    @property
    def magic(self) -> Optional[bytes]:
        """Leading bytes identifying binary files of this format, None for text formats."""
        return None

    @property
    def placeholder_patterns(self) -> list[PlaceholderPattern]:
        """
        Placeholder patterns used by this format.

        Override in subclasses to specify format-specific patterns.
        """
        return []

    @abstractmethod
    def summarize(self, data: bytes) -> dict[str, Any]:
        """
        Describe the content of a file in this format.

        Args:
            data: Raw file content

        Returns:
            JSON-serializable summary
        """
        pass

    def extract_placeholders(self, text: str) -> list[str]:
        """
        Extract all placeholders from text using this format's patterns.

        Returns:
            List of placeholder strings found (deduplicated, order preserved)
        """
        placeholders = []
        for pattern in self.placeholder_patterns:
            placeholders.extend(pattern.find_all(text))
        return list(dict.fromkeys(placeholders))

    def validate_placeholders(self, source: str, translation: str) -> list[str]:
        """
        Validate that all source placeholders exist in translation.

        Returns:
            List of missing placeholder messages
        """
        missing = set(self.extract_placeholders(source)) - set(self.extract_placeholders(translation))
        return [f"Missing placeholder in translation: {p}" for p in sorted(missing)]


class FormatRegistry:
    """Registry of available catalog formats."""

    _formats: dict[str, type[CatalogFormat]] = {}
    _extension_map: dict[str, str] = {}  # extension -> format name

    @classmethod
    def register(cls, format_class: type[CatalogFormat]) -> None:
        """Register a catalog format class."""
        handler = format_class()
        cls._formats[handler.name.lower()] = format_class
        for ext in handler.file_extensions:
            cls._extension_map[ext.lower()] = handler.name.lower()

    @classmethod
    def get_handler(cls, name: str) -> CatalogFormat:
        """Get format instance by name."""
        name_lower = name.lower()
        if name_lower not in cls._formats:
            available = ', '.join(cls._formats.keys())
            raise ValueError(f"Unknown format: {name}. Available: {available}")
        return cls._formats[name_lower]()

    @classmethod
    def get_handler_for_extension(cls, extension: str) -> CatalogFormat:
        """Get format instance by file extension."""
        ext = extension.lower().lstrip('.')
        if ext not in cls._extension_map:
            available = ', '.join(cls._extension_map.keys())
            raise ValueError(f"Unknown extension: .{ext}. Supported: {available}")
        return cls.get_handler(cls._extension_map[ext])

    @classmethod
    def detect_format(cls, filepath: str, content: Optional[bytes] = None) -> CatalogFormat:
        """
        Detect the format of a file from its magic bytes, else its extension.

        Args:
            filepath: Path to the file
            content: Optional file content for content-based detection
        """
        if content:
            for format_class in cls._formats.values():
                handler = format_class()
                if handler.magic and content.startswith(handler.magic):
                    return handler
        return cls.get_handler_for_extension(Path(filepath).suffix)

    @classmethod
    def list_formats(cls) -> list[dict[str, Any]]:
        """List all registered formats with their extensions."""
        result = []
        for format_class in cls._formats.values():
            handler = format_class()
            result.append({
                'name': handler.name,
                'extensions': handler.file_extensions,
                'binary': handler.magic is not None,
            })
        return result
