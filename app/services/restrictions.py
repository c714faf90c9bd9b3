"""Composition of promo access restrictions.

A promo code may narrow what it unlocks along three independent axes:
content type, level and language. Each axis is either set or absent; an
absent axis means "anything goes" along it.
"""
from __future__ import annotations

from typing import NamedTuple

ALL_CONTENT = "all content"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class Restrictions(NamedTuple):
    """Restriction triple; ``None`` on an axis means unrestricted."""

    content_type: str | None = None
    level: str | None = None
    language: str | None = None

    @classmethod
    def of(
        cls,
        content_type: str | None = None,
        level: str | None = None,
        language: str | None = None,
    ) -> "Restrictions":
        """Build a triple, treating blank strings as absent."""
        return cls(_clean(content_type), _clean(level), _clean(language))

    @classmethod
    def from_promo(cls, promo) -> "Restrictions":
        return cls.of(
            promo.content_type_restriction,
            promo.level_restriction,
            promo.language_restriction,
        )

    @classmethod
    def from_user(cls, user) -> "Restrictions":
        return cls.of(
            user.promo_content_restriction,
            user.promo_level_restriction,
            user.promo_language_restriction,
        )

    @property
    def is_unrestricted(self) -> bool:
        return not any(self)

    def qualifiers(self) -> list[str]:
        """Display qualifiers in content type, level, language order."""
        parts: list[str] = []
        if self.content_type:
            parts.append(self.content_type.upper())
        if self.level:
            parts.append(f"{self.level} level")
        if self.language:
            parts.append(f"{self.language} language support")
        return parts

    def scope(self) -> str:
        if self.is_unrestricted:
            return ALL_CONTENT
        return " + ".join(self.qualifiers())

    def access_description(self, free_days: int) -> str:
        return f"{free_days} days free access to {self.scope()}"

    def as_dict(self) -> dict[str, str | None]:
        return {
            "content_type": self.content_type,
            "level": self.level,
            "language": self.language,
        }

    def allows(
        self,
        content_type: str | None,
        level: str | None,
        language: str | None,
    ) -> bool:
        """Return ``True`` when a lesson with these attributes is inside the scope."""
        for required, actual in (
            (self.content_type, content_type),
            (self.level, level),
            (self.language, language),
        ):
            if required is None:
                continue
            if actual is None or actual.strip().lower() != required.lower():
                return False
        return True


__all__ = ["ALL_CONTENT", "Restrictions"]
