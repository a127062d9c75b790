"""
Locale models — current configuration and the aggregate status snapshot.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Fixed order used for localectl arguments and for rendering locale.conf
LOCALE_CATEGORIES: tuple[str, ...] = (
    "LANG",
    "LC_COLLATE",
    "LC_CTYPE",
    "LC_MESSAGES",
    "LC_MONETARY",
    "LC_NUMERIC",
    "LC_TIME",
)


class LocaleConfiguration(BaseModel):
    """The seven locale categories from the system locale file."""

    lang: str = ""
    lc_collate: str = ""
    lc_ctype: str = ""
    lc_messages: str = ""
    lc_monetary: str = ""
    lc_numeric: str = ""
    lc_time: str = ""

    def get(self, category: str) -> str:
        """Value for an upper-case category name (``LC_TIME``)."""
        return getattr(self, category.lower())

    def to_conf(self) -> str:
        """Render as ``KEY="value"`` lines, skipping empty categories."""
        lines = [
            f'{category}="{self.get(category)}"'
            for category in LOCALE_CATEGORIES
            if self.get(category)
        ]
        return "\n".join(lines) + ("\n" if lines else "")


class LocaleStatus(BaseModel):
    """Full locale picture, rebuilt from the host on every query."""

    current: LocaleConfiguration = Field(default_factory=LocaleConfiguration)
    available_locales: list[str] = Field(default_factory=list)
    generated_locales: list[str] = Field(default_factory=list)
    reboot_required: bool = False
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
