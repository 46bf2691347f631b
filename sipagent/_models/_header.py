"""
SIP Headers implementation.

Provides a case-insensitive, order-preserving headers container and a
HeaderParser for the header values the register agent needs to inspect
(parameters, Contact lists, Expires deltas).
"""

from __future__ import annotations

import typing
from collections.abc import Mapping

from .._utils import HEADERS, HEADERS_COMPACT, EOL
from .._types import HeaderTypes


# ============================================================================
# Headers Implementation
# ============================================================================


class Headers(typing.MutableMapping[str, str]):
    """Case-insensitive SIP headers preserving insertion order.

    Header names are stored in canonical form, so ``h["cseq"]``,
    ``h["CSeq"]`` and ``h["CSEQ"]`` address the same entry. Compact forms
    are expanded on the way in.

    Examples:
        >>> h = Headers({"call-id": "abc@host", "m": "<sip:alice@host>"})
        >>> h["Call-ID"]
        'abc@host'
        >>> list(h.keys())
        ['Call-ID', 'Contact']
    """

    __slots__ = ("_store", "_order")

    @staticmethod
    def _canonical(name: str) -> str:
        """
        Convert header name to canonical form.

        - single character: compact form lookup
        - known header (any casing): mapped canonical form
        - otherwise Title-Case of each '-' separated token
        """
        name = name.strip()
        lower = name.lower()

        if len(name) == 1 and lower in HEADERS_COMPACT:
            expanded = HEADERS_COMPACT[lower]
            return HEADERS.get(expanded, expanded)

        if lower in HEADERS:
            return HEADERS[lower]

        return "-".join(part.capitalize() for part in lower.split("-"))

    def __init__(self, headers: HeaderTypes | None = None) -> None:
        # _store maps canonical_name -> value
        self._store: dict[str, str] = {}
        self._order: list[str] = []

        if isinstance(headers, Headers):
            self._store = headers._store.copy()
            self._order = headers._order.copy()
        elif isinstance(headers, Mapping):
            for key, value in headers.items():
                self[key] = value
        elif headers is not None:
            raise TypeError("headers must be Headers or Mapping")

    def __getitem__(self, key: str) -> str:
        canonical = self._canonical(key)
        if canonical not in self._store:
            raise KeyError(key)
        return self._store[canonical]

    def __setitem__(self, key: str, value: str) -> None:
        """Set a header value, replacing any existing value for this name."""
        canonical = self._canonical(key)
        if canonical not in self._store:
            self._order.append(canonical)
        self._store[canonical] = str(value)

    def __delitem__(self, key: str) -> None:
        canonical = self._canonical(key)
        if canonical not in self._store:
            raise KeyError(key)
        del self._store[canonical]
        self._order.remove(canonical)

    def __iter__(self) -> typing.Iterator[str]:
        return iter(list(self._order))

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self._canonical(key) in self._store

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"Headers({{{items}}})"

    def copy(self) -> Headers:
        """Create a copy of this Headers instance."""
        return Headers(self)

    def raw(self, encoding: str = "utf-8") -> bytes:
        """Serialize headers as 'Name: value' lines, each terminated by CRLF."""
        lines = [f"{name}: {value}".encode(encoding) for name, value in self.items()]
        if not lines:
            return b""
        return EOL.encode(encoding).join(lines) + EOL.encode(encoding)


# ============================================================================
# Header Parser
# ============================================================================


class HeaderParser:
    """Helpers for picking apart SIP header values."""

    @staticmethod
    def parse_header_value(value: str) -> dict[str, str]:
        """
        Parse a header value into main value and parameters.

        Parameter names are lowercased, quoted values are unquoted and
        flag parameters (no '=') map to an empty string.

        Example:
            >>> HeaderParser.parse_header_value('<sip:alice@host>;expires=600')
            {'value': '<sip:alice@host>', 'expires': '600'}
        """
        result: dict[str, str] = {}

        # Parameters after a '>' belong to the header, not the URI
        if ">" in value:
            main, _, params = value.partition(">")
            result["value"] = (main + ">").strip()
            parts = params.split(";")[1:]
        else:
            parts = value.split(";")
            result["value"] = parts[0].strip()
            parts = parts[1:]

        for part in parts:
            part = part.strip()
            if not part:
                continue
            if "=" in part:
                key, val = part.split("=", 1)
                result[key.strip().lower()] = val.strip().strip('"')
            else:
                result[part.lower()] = ""

        return result

    @staticmethod
    def split_contacts(value: str) -> list[str]:
        """
        Split a Contact header value into its comma-separated entries.

        Commas inside angle brackets or quotes do not split.
        """
        entries: list[str] = []
        current = ""
        in_quotes = False
        in_brackets = False

        for char in value:
            if char == '"':
                in_quotes = not in_quotes
            elif char == "<" and not in_quotes:
                in_brackets = True
            elif char == ">" and not in_quotes:
                in_brackets = False
            elif char == "," and not in_quotes and not in_brackets:
                if current.strip():
                    entries.append(current.strip())
                current = ""
                continue
            current += char

        if current.strip():
            entries.append(current.strip())
        return entries

    @staticmethod
    def parse_delta_seconds(value: str | None) -> int | None:
        """Parse an Expires-style delta-seconds value, None if absent or invalid."""
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError:
            return None


__all__ = [
    "Headers",
    "HeaderParser",
]
