"""Message translation for user-facing migrator messages."""

import gettext
from pathlib import Path
from typing import Optional

TEXT_DOMAIN = "mlp2to3"


class Translator:
    """Translates message templates and fills positional placeholders.

    Templates use ``str.format`` style placeholders (``{0}``, ``{1}``).
    Without a catalog for the current locale, templates pass through as-is.
    """

    def __init__(self, localedir: Optional[Path] = None, domain: str = TEXT_DOMAIN):
        self.domain = domain
        self._catalog = gettext.translation(
            domain,
            localedir=str(localedir) if localedir else None,
            fallback=True,
        )

    def __call__(self, message: str, *args) -> str:
        translated = self._catalog.gettext(message)
        if not args:
            return translated
        return translated.format(*args)
