"""Localized string resources of a pass.

Each language ends up as "<lang>.lproj/pass.strings", a UTF-16 text file of
"key" = "value"; lines. Loading string tables from disk is up to the caller.
"""

from collections.abc import Mapping

PASS_STRINGS_FILENAME = "pass.strings"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def encode_strings(strings: Mapping[str, str]) -> bytes:
    """Encode a string table in the .strings format (UTF-16 with BOM)."""
    lines = [f'"{_escape(key)}" = "{_escape(value)}";' for key, value in strings.items()]
    return "\n".join(lines).encode("utf-16")


class Localizations:
    """Per-language string tables of a pass."""

    def __init__(self) -> None:
        self._strings: dict[str, dict[str, str]] = {}
        self._files: dict[str, bytes] = {}

    def add(self, lang: str, strings: Mapping[str, str]) -> None:
        """Merge translations into a language's string table."""
        self._strings.setdefault(lang, {}).update(strings)

    def add_file(self, lang: str, data: bytes) -> None:
        """Use a pre-built pass.strings file for a language."""
        self._files[lang] = data

    def get(self, lang: str) -> dict[str, str]:
        return dict(self._strings.get(lang, {}))

    def languages(self) -> list[str]:
        return sorted(set(self._strings) | set(self._files))

    def copy(self) -> "Localizations":
        localizations = Localizations()
        localizations._strings = {lang: dict(strings) for lang, strings in self._strings.items()}
        localizations._files = dict(self._files)
        return localizations

    def to_files(self) -> list[tuple[str, bytes]]:
        """Produce one pass.strings bundle file per language.

        A string table takes precedence over a pre-built file for the same
        language.
        """
        files: list[tuple[str, bytes]] = []
        for lang in self.languages():
            if lang in self._strings:
                data = encode_strings(self._strings[lang])
            else:
                data = self._files[lang]
            files.append((f"{lang}.lproj/{PASS_STRINGS_FILENAME}", data))
        return files
