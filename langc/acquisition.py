#!/usr/bin/env python3
"""
Sources of raw locale catalogs.

A LocaleCatalogSource hands the pipeline the PO text of one locale. Files,
in-memory text and a directory of `<locale>.po` files are supported;
a translation-service download can implement the same interface. Every
failure surfaces as AcquisitionError.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from .errors import AcquisitionError

logger = logging.getLogger(__name__)


class LocaleCatalogSource(ABC):
    """Provides the PO text of one locale."""

    def __init__(self, locale: str):
        self.locale = locale

    @property
    def path(self) -> Optional[str]:
        """Where the text comes from, for error messages."""
        return None

    @abstractmethod
    def fetch(self) -> str:
        """
        Return the catalog text.

        Raises:
            AcquisitionError: If the catalog cannot be obtained
        """
        pass


class FileCatalogSource(LocaleCatalogSource):
    """A PO file on disk."""

    def __init__(self, locale: str, filepath: Union[str, Path]):
        super().__init__(locale)
        self.filepath = Path(filepath)

    @property
    def path(self) -> Optional[str]:
        return str(self.filepath)

    def fetch(self) -> str:
        try:
            return self.filepath.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise AcquisitionError(f"Catalog not found: {self.filepath}", locale=self.locale) from e
        except UnicodeDecodeError as e:
            raise AcquisitionError(f"Catalog is not valid UTF-8: {self.filepath}: {e}", locale=self.locale) from e
        except OSError as e:
            raise AcquisitionError(f"Cannot read {self.filepath}: {e}", locale=self.locale) from e


class TextCatalogSource(LocaleCatalogSource):
    """PO text already in memory."""

    def __init__(self, locale: str, text: str, origin: Optional[str] = None):
        super().__init__(locale)
        self.text = text
        self.origin = origin

    @property
    def path(self) -> Optional[str]:
        return self.origin

    def fetch(self) -> str:
        return self.text


class DirectorySource:
    """
    A directory with one `<locale>.po` file per locale.

    Args:
        directory: Directory to read
        suffix: File suffix of catalogs
    """

    def __init__(self, directory: Union[str, Path], suffix: str = ".po"):
        self.directory = Path(directory)
        self.suffix = suffix

    def locales(self) -> list[str]:
        if not self.directory.is_dir():
            raise AcquisitionError(f"Catalog directory not found: {self.directory}")
        return sorted(p.stem for p in self.directory.glob(f"*{self.suffix}") if p.is_file())

    def sources(self) -> dict[str, LocaleCatalogSource]:
        """One FileCatalogSource per catalog file, keyed by locale."""
        found = {
            locale: FileCatalogSource(locale, self.directory / f"{locale}{self.suffix}")
            for locale in self.locales()
        }
        logger.debug(f"Found {len(found)} catalogs in {self.directory}: {', '.join(found)}")
        return found
