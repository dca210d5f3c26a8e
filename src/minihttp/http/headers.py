"""
=============================================================================
HEADER CONTAINER
=============================================================================

An ordered, case-insensitive, multi-valued mapping used for both request
headers and query parameters.

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

HTTP header names are case-insensitive (RFC 7230 section 3.2), and a single
header can carry several values:

    Accept: text/html, application/json      ← one line, two values
    Cookie: a=1
    Cookie: b=2                              ← two lines, same header

A dict keyed by the raw name gets both of these wrong. HeaderMap stores:

    ┌──────────────────┬────────────────────┬──────────────────────────────┐
    │  lookup key      │  display name      │  values                      │
    ├──────────────────┼────────────────────┼──────────────────────────────┤
    │  "accept"        │  "Accept"          │  ["text/html",               │
    │                  │                    │   "application/json"]        │
    │  "cookie"        │  "Cookie"          │  ["a=1", "b=2"]              │
    └──────────────────┴────────────────────┴──────────────────────────────┘

The display name is what gets written back on the wire, so a response
header set as "Content-Type" goes out as "Content-Type" even though the
lookup is done on "content-type".

INVARIANT: a key that is present always maps to at least one value.

=============================================================================
"""

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union


Values = Union[str, Iterable[str]]


class HeaderMap:
    """
    Ordered mapping of case-insensitive names to non-empty value lists.

    Usage:
        headers = HeaderMap()
        headers.add("Accept", "text/html")
        headers.add("accept", "application/json")

        headers.get("ACCEPT")        # "text/html"
        headers.get_all("Accept")    # ["text/html", "application/json"]
        "accept" in headers          # True
    """

    def __init__(self, initial: Optional[Union["HeaderMap", Mapping[str, Values]]] = None):
        # lowercase name → (display name, values)
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        if initial is not None:
            for name, values in initial.items():
                self.set(name, values)

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    @staticmethod
    def _as_list(values: Values) -> List[str]:
        if isinstance(values, str):
            return [values]
        return [str(v) for v in values]

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, name: str, value: str) -> "HeaderMap":
        """
        Append a value to ``name``, creating the entry if needed.

        The display spelling of an existing entry is kept.

        Returns:
            Self for method chaining
        """
        key = self._key(name)
        if key in self._entries:
            self._entries[key][1].append(value)
        else:
            self._entries[key] = (name.strip(), [value])
        return self

    def extend(self, name: str, values: Iterable[str]) -> "HeaderMap":
        """Append several values to ``name``."""
        for value in values:
            self.add(name, value)
        return self

    def set(self, name: str, values: Values) -> "HeaderMap":
        """
        Replace every value of ``name``.

        Args:
            name: Header or parameter name (any case)
            values: A single string or an iterable of strings

        Raises:
            ValueError: If ``values`` is empty (would break the invariant).
        """
        value_list = self._as_list(values)
        if not value_list:
            raise ValueError(f"Header {name!r} needs at least one value")
        self._entries[self._key(name)] = (name.strip(), value_list)
        return self

    def remove(self, name: str) -> None:
        """Remove ``name`` if present."""
        self._entries.pop(self._key(name), None)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of ``name``, or ``default``."""
        entry = self._entries.get(self._key(name))
        return entry[1][0] if entry else default

    def get_all(self, name: str) -> List[str]:
        """Return a copy of every value of ``name`` (empty list if absent)."""
        entry = self._entries.get(self._key(name))
        return list(entry[1]) if entry else []

    def joined(self, name: str) -> Optional[str]:
        """Return the values of ``name`` joined the way they go on the wire."""
        entry = self._entries.get(self._key(name))
        return ",".join(entry[1]) if entry else None

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        """Yield ``(display_name, values)`` in insertion order."""
        for display, values in self._entries.values():
            yield display, list(values)

    def to_dict(self) -> Dict[str, List[str]]:
        """Plain dict copy keyed by lowercase name."""
        return {key: list(values) for key, (_, values) in self._entries.items()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._entries

    def __getitem__(self, name: str) -> List[str]:
        entry = self._entries.get(self._key(name))
        if entry is None:
            raise KeyError(name)
        return list(entry[1])

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == HeaderMap(other).to_dict()
        return NotImplemented

    def __repr__(self) -> str:
        pairs = ", ".join(f"{display!r}: {values!r}" for display, values in self.items())
        return f"HeaderMap({{{pairs}}})"
