"""
=============================================================================
REQUEST HEADER SET
=============================================================================

A deliberately small header model: the server only ever looks at six
request headers, so only those six are kept.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      RECOGNIZED HEADERS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   host              Target host (kept for logging)                   │
    │   user-agent        Echoed back by GET /user-agent                   │
    │   accept            Kept, not interpreted                            │
    │   content-length    Size of a POST body                              │
    │   content-type      Kept, not interpreted                            │
    │   accept-encoding   "gzip" (exactly) triggers Content-Encoding       │
    │                                                                      │
    │   Anything else     Silently ignored                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names are case-insensitive ("User-Agent" == "user-agent").
When a recognized header appears more than once the LAST value wins.
There is no comma-joining of repeated values.

=============================================================================
"""

from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple


# Only ASCII whitespace is trimmed; str.strip() would also eat \xa0 and \x85
WHITESPACE = " \t\r\n\v\f"


class HeaderName(str, Enum):
    """The request headers the server recognizes, by lowercase wire name."""

    HOST = "host"
    USER_AGENT = "user-agent"
    ACCEPT = "accept"
    CONTENT_LENGTH = "content-length"
    CONTENT_TYPE = "content-type"
    ACCEPT_ENCODING = "accept-encoding"

    @classmethod
    def lookup(cls, name: str) -> Optional["HeaderName"]:
        """
        Map a raw header name to a recognized one.

        Returns None for headers the server ignores.
        """
        try:
            return cls(name.strip(WHITESPACE).lower())
        except ValueError:
            return None


class HeaderSet:
    """
    Immutable mapping of recognized header names to values.

    Build one with from_pairs(); unrecognized names are dropped there
    and can never be stored afterwards.

        headers = HeaderSet.from_pairs([
            ("User-Agent", "curl/8.0"),
            ("X-Trace", "abc"),          # dropped
        ])
        headers.user_agent               # "curl/8.0"
        "x-trace" in headers             # False
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[dict] = None):
        self._values: dict[HeaderName, str] = {}
        for name, value in (values or {}).items():
            key = name if isinstance(name, HeaderName) else HeaderName.lookup(name)
            if key is not None:
                self._values[key] = value

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "HeaderSet":
        """Build a header set from (name, value) pairs in wire order."""
        values: dict[HeaderName, str] = {}
        for name, value in pairs:
            key = HeaderName.lookup(name)
            if key is None:
                continue
            # Later occurrences overwrite earlier ones
            values[key] = value
        return cls(values)

    def get(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Unrecognized names always return the default.
        """
        key = name if isinstance(name, HeaderName) else HeaderName.lookup(name)
        if key is None:
            return default
        return self._values.get(key, default)

    # Convenience accessors for the headers handlers care about

    @property
    def host(self) -> str:
        return self.get(HeaderName.HOST)

    @property
    def user_agent(self) -> str:
        return self.get(HeaderName.USER_AGENT)

    @property
    def accept(self) -> str:
        return self.get(HeaderName.ACCEPT)

    @property
    def content_length(self) -> Optional[str]:
        """Raw content-length value, or None when the header was not sent."""
        return self._values.get(HeaderName.CONTENT_LENGTH)

    @property
    def content_type(self) -> str:
        return self.get(HeaderName.CONTENT_TYPE)

    @property
    def accept_encoding(self) -> str:
        return self.get(HeaderName.ACCEPT_ENCODING)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, HeaderName):
            return name in self._values
        if isinstance(name, str):
            key = HeaderName.lookup(name)
            return key is not None and key in self._values
        return False

    def __iter__(self) -> Iterator[HeaderName]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def items(self):
        return self._values.items()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderSet):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k.value}={v!r}" for k, v in self._values.items())
        return f"HeaderSet({inner})"
