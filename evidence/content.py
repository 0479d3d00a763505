"""Language-aware content catalog: text lookup plus scenario and archetype lists."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .content_schema import validate_content
from .models import Archetype, Scenario, parse_archetype, parse_scenario
from .storage import StorageError

logger = logging.getLogger(__name__)

DEFAULT_LOCALES_DIR = Path(__file__).resolve().parent / "locales"
LANGUAGES = ("pt", "en")
LANGUAGE_KEY = "language"

LanguageListener = Callable[[str], None]


class ContentError(ValueError):
    """Raised when a content document cannot be read or fails validation."""


def read_content(path: Path | str) -> Dict[str, Any]:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
    except FileNotFoundError as exc:
        raise ContentError(f"Content file missing: {path}") from exc
    except ValueError as exc:
        raise ContentError(f"Invalid JSON or encoding in {path}: {exc}") from exc
    errors = validate_content(document)
    if errors:
        raise ContentError(f"Invalid content in {path}:\n- " + "\n- ".join(errors))
    return document


class ContentCatalog:
    """Hold the loaded text table, scenarios and archetypes for one language.

    Only one load runs at a time; a request made while another is in flight is
    dropped. A failed load is logged and keeps whatever was loaded before.
    """

    def __init__(
        self,
        locales_dir: Path | str = DEFAULT_LOCALES_DIR,
        *,
        storage=None,
        default_language: str = "pt",
    ) -> None:
        self.locales_dir = Path(locales_dir)
        self.storage = storage
        self.language = self._stored_language() or default_language
        self.translations: Dict[str, Any] = {}
        self._scenarios: Tuple[Scenario, ...] = ()
        self._archetypes: Tuple[Archetype, ...] = ()
        self._listeners: List[LanguageListener] = []
        self.is_loading = False

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return self._scenarios

    @property
    def archetypes(self) -> Tuple[Archetype, ...]:
        return self._archetypes

    def add_listener(self, listener: LanguageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: LanguageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def load_language(self, language: Optional[str] = None) -> bool:
        if self.is_loading:
            logger.debug("Language load already in progress; dropping request for %r.", language)
            return False
        language = language or self.language
        if not all(ch.isalnum() or ch in "-_" for ch in language):
            logger.error("Error loading language %r: invalid language code.", language)
            return False
        self.is_loading = True
        try:
            path = self.locales_dir / f"{language}.json"
            document = await asyncio.to_thread(read_content, path)
            scenarios = tuple(parse_scenario(entry) for entry in document.get("scenarios", []))
            archetypes = tuple(parse_archetype(entry) for entry in document.get("archetypes", []))
        except (ContentError, OSError) as exc:
            logger.error("Error loading language %r: %s", language, exc)
            return False
        finally:
            self.is_loading = False

        self.translations = document
        self._scenarios = scenarios
        self._archetypes = archetypes
        self.language = language
        self._store_language(language)
        for listener in list(self._listeners):
            listener(language)
        return True

    async def toggle_language(self) -> bool:
        target = LANGUAGES[1] if self.language == LANGUAGES[0] else LANGUAGES[0]
        return await self.load_language(target)

    def t(self, key_path: str, fallback: Optional[str] = None) -> str:
        """Walk a dot-separated path through the text table."""
        if fallback is None:
            fallback = key_path
        value: Any = self.translations
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return fallback
        return value if isinstance(value, str) else fallback

    def _stored_language(self) -> Optional[str]:
        if self.storage is None:
            return None
        try:
            value = self.storage.getItem(LANGUAGE_KEY)
        except StorageError as exc:
            logger.error("Could not read language preference: %s", exc)
            return None
        return value or None

    def _store_language(self, language: str) -> None:
        if self.storage is None:
            return
        try:
            self.storage.setItem(LANGUAGE_KEY, language)
        except StorageError as exc:
            logger.error("Could not save language preference: %s", exc)
