"""URL template parsing.

A URL template is a string holding zero or more placeholders written either
``{key}`` or ``{key=(default)}``. Keys are restricted to ``[A-Za-z0-9_]+``.
A placeholder with a default substitutes that literal when its path argument
is absent; one without a default becomes the empty string.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from ..models.errors import ConfigurationError

KEY_PATTERN = re.compile(r"[A-Za-z0-9_]+")

_PLACEHOLDER = re.compile(r"\{(?P<key>[A-Za-z0-9_]+)(?:=\((?P<default>.*?)\))?\}")
_STRAY_BRACE = re.compile(r"\{[^{}]*\}?|\}")


def is_valid_key(key: str) -> bool:
    return KEY_PATTERN.fullmatch(key) is not None


@dataclass(frozen=True)
class Placeholder:
    key: str
    default: Optional[str] = None


class UrlTemplate:
    """Parsed view over a URL template string."""

    def __init__(self, template: str) -> None:
        """Parse ``template``.

        Raises:
            ConfigurationError: If a brace does not belong to a well-formed
                placeholder, e.g. ``{item-id}`` or an unclosed ``{id``.
        """
        self.template = template
        self._placeholders: dict[str, Placeholder] = {}
        for match in _PLACEHOLDER.finditer(template):
            key = match.group("key")
            # first occurrence of a repeated key decides its default
            if key not in self._placeholders:
                self._placeholders[key] = Placeholder(key, match.group("default"))

        stray = _STRAY_BRACE.search(_PLACEHOLDER.sub("", template))
        if stray is not None:
            raise ConfigurationError(
                f"Malformed placeholder '{stray.group(0)}' in '{template}'; "
                "placeholders are written {key} or {key=(default)} with keys "
                "matching [A-Za-z0-9_]+"
            )

    def __iter__(self) -> Iterator[Placeholder]:
        return iter(self._placeholders.values())

    def __contains__(self, key: object) -> bool:
        return key in self._placeholders

    def __repr__(self) -> str:
        return f"UrlTemplate({self.template!r})"

    @property
    def keys(self) -> list[str]:
        return list(self._placeholders)

    def default_for(self, key: str) -> Optional[str]:
        placeholder = self._placeholders.get(key)
        return placeholder.default if placeholder else None

    def expand(self, values: Mapping[str, str]) -> str:
        """Substitute every placeholder in a single pass.

        A placeholder takes its value from ``values`` when present there,
        else its own default, else the empty string. Substituted text is
        never scanned again, so the result holds no ``{key}`` token coming
        from the template.
        """

        def _replace(match: "re.Match[str]") -> str:
            key = match.group("key")
            if key in values:
                return values[key]
            return match.group("default") or ""

        return _PLACEHOLDER.sub(_replace, self.template)
