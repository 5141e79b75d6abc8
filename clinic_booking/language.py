"""Current-language store with a typed change channel.

The store is created once by the application and passed explicitly to the
gateway and pages. Subscribers receive ``LanguageChanged`` events; there is
no global broadcast.

Persistence: a small JSON file ({"lang": "ky"}), read once on startup.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from clinic_booking import config

logger = logging.getLogger(__name__)


LANGUAGES: Dict[str, str] = {
    "ru": "Русский",
    "ky": "Кыргызча",
}


@dataclass(frozen=True)
class LanguageChanged:
    """Published after the current language actually changed."""
    previous: str
    current: str


LanguageListener = Callable[[LanguageChanged], None]


class Subscription:
    """Handle returned by ``LanguageStore.subscribe``; close it to unsubscribe."""

    def __init__(self, store: "LanguageStore", listener: LanguageListener):
        self._store = store
        self._listener = listener
        self.active = True

    def close(self):
        if self.active:
            self._store._remove(self._listener)
            self.active = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class LanguageStore:
    """Persisted current-language value."""

    def __init__(
        self,
        path: Optional[Path] = None,
        default: str = config.DEFAULT_LANGUAGE,
        supported: Sequence[str] = config.SUPPORTED_LANGUAGES,
    ):
        """
        Initialize the store.

        Args:
            path: JSON file holding the preference. None keeps it in memory only.
            default: Language used when nothing valid is persisted
            supported: Allowed language codes
        """
        if default not in supported:
            raise ValueError(f"Default language '{default}' is not supported")

        self.path = Path(path) if path is not None else None
        self.default = default
        self.supported = tuple(supported)
        self._listeners: List[LanguageListener] = []
        self._current = self._load()

    @property
    def current(self) -> str:
        return self._current

    def _load(self) -> str:
        if self.path is None or not self.path.exists():
            return self.default

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable language file {self.path}: {e}")
            return self.default

        lang = data.get("lang") if isinstance(data, dict) else None
        if lang not in self.supported:
            return self.default
        return lang

    def _save(self, lang: str):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"lang": lang}, f, ensure_ascii=False)

    def set(self, lang: str) -> bool:
        """
        Change the current language.

        Args:
            lang: Language code (e.g. "ru", "ky")

        Returns:
            True if the language changed (listeners were notified)

        Raises:
            ValueError: If the code is not supported
        """
        if lang not in self.supported:
            raise ValueError(
                f"Unsupported language '{lang}'. Choose one of: {', '.join(self.supported)}"
            )

        if lang == self._current:
            return False

        previous = self._current
        self._save(lang)
        self._current = lang
        logger.info(f"Language changed {previous} -> {lang}")

        event = LanguageChanged(previous=previous, current=lang)
        # Copy: listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(event)
        return True

    def subscribe(self, listener: LanguageListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: LanguageListener):
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
