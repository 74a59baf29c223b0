from __future__ import annotations

import logging
from pathlib import Path

from page_inserter.domain.errors import MissingFiller

logger = logging.getLogger(__name__)


class DefaultFillerResolver:
    """Reads the filler PDF from a fixed location; never falls back to another source."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def resolve(self) -> tuple[str, bytes]:
        try:
            content = self.path.read_bytes()
        except OSError as exc:
            logger.warning(f"Default filler not available at {self.path}: {exc}")
            raise MissingFiller(f"Filler PDF not found at {self.path}") from exc
        if not content:
            raise MissingFiller(f"Filler PDF at {self.path} is empty")
        return self.path.name, content
