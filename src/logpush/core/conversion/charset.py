"""
Charset repair for text fields.

Log files in the wild mix UTF-8 with legacy single-byte encodings.
Every text value goes through the same chain before it reaches a sink:

1. already valid UTF-8: unchanged
2. reinterpreted from the secondary charset (ISO-8859-15 by default)
3. transliterated to plain ASCII (never fails)

Readers that cannot decode a byte keep it as a surrogateescape code
point, so str values still carry the original bytes.
"""

from unidecode import unidecode

PRIMARY_ENCODING = "utf-8"
SECONDARY_ENCODING = "iso8859_15"


class CharsetRepair:
    """
    Deterministic UTF-8 / secondary charset / ASCII fallback chain.
    """

    def __init__(self, secondary: str = SECONDARY_ENCODING, replace_str: str = "?"):
        """
        Initialize the repair chain.

        Args:
            secondary: Codec tried when the bytes are not valid UTF-8
            replace_str: Substitute for characters transliteration cannot map
        """
        self.secondary = secondary
        self.replace_str = replace_str

    def __call__(self, value: str | bytes) -> str:
        return self.repair(value)

    def repair(self, value: str | bytes) -> str:
        """
        Return value as valid UTF-8 text.

        Args:
            value: Text as produced by a reader, or raw bytes

        Returns:
            Repaired text
        """
        if isinstance(value, str):
            if value.isascii():
                return value
            try:
                value.encode(PRIMARY_ENCODING)
                return value
            except UnicodeEncodeError:
                pass
            try:
                raw = value.encode(PRIMARY_ENCODING, "surrogateescape")
            except UnicodeEncodeError:
                # lone surrogates that never came from a byte
                return self.transliterate(value)
        else:
            raw = bytes(value)

        try:
            return raw.decode(PRIMARY_ENCODING)
        except UnicodeDecodeError:
            pass
        try:
            return raw.decode(self.secondary)
        except UnicodeDecodeError:
            return self.transliterate(raw.decode(PRIMARY_ENCODING, "replace"))

    def transliterate(self, text: str) -> str:
        """
        Best-effort ASCII approximation of text.

        Non-empty whenever text is non-empty.
        """
        cleaned = text.encode(PRIMARY_ENCODING, "replace").decode(PRIMARY_ENCODING)
        result = unidecode(cleaned, errors="replace", replace_str=self.replace_str)
        if text and not result:
            return self.replace_str
        return result


_default_repair = CharsetRepair()


def repair_text(value: str | bytes) -> str:
    """Repair value with the default UTF-8 / ISO-8859-15 / ASCII chain."""
    return _default_repair.repair(value)
