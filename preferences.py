from typing import Optional

THEME_COOKIE = "theme-storage"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


def resolve_theme(stored: Optional[str]) -> str:
    return stored if stored in THEMES else DEFAULT_THEME


def toggle_theme(theme: str) -> str:
    return "dark" if resolve_theme(theme) == "light" else "light"
