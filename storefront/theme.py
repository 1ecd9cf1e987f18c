import logging

from .database import THEME_KEY

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")
DEFAULT_THEME = "light"


class ThemePreference:
    """The user's colour theme, persisted under the ``theme`` storage key."""

    def __init__(self, storage) -> None:
        self.storage = storage
        stored = storage.get_item(THEME_KEY)
        if stored is not None and stored not in THEMES:
            logger.warning(f"Ignoring unknown stored theme {stored!r}")
            stored = None
        self._theme = stored or DEFAULT_THEME

    @property
    def theme(self) -> str:
        return self._theme

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        self._theme = value
        self.storage.set_item(THEME_KEY, value)

    def is_dark(self, system_dark: bool = False) -> bool:
        if self._theme == "system":
            return system_dark
        return self._theme == "dark"
