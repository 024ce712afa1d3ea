"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import warnings
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from urllib.parse import quote, urlsplit, urlunsplit

from .exceptions import SignerWarning

BodyType = bytes | bytearray | str | Iterable[bytes] | None

# RFC 3986 path characters plus "%" so existing escapes are kept.
PATH_SAFE_CHARS = "/%!$&'()*+,;=:@~"


@dataclass(kw_only=True)
class URI:
    scheme: str = "https"
    host: str
    port: int | None = None
    path: str | None = None
    query: str | None = None
    fragment: str | None = None

    @classmethod
    def from_url(cls, url: str) -> "URI":
        parts = urlsplit(url)
        return cls(
            scheme=parts.scheme or "https",
            host=parts.hostname or "",
            port=parts.port,
            path=quote(parts.path, safe=PATH_SAFE_CHARS) or None,
            query=parts.query or None,
            fragment=parts.fragment or None,
        )

    @property
    def netloc(self) -> str:
        """The host with the port appended when one is set."""
        if self.port is not None:
            return f"{self.host}:{self.port}"
        return self.host

    def build(self) -> str:
        """Reassemble the URI into a URL string."""
        return urlunsplit(
            (
                self.scheme,
                self.netloc,
                self.path or "",
                self.query or "",
                self.fragment or "",
            )
        )

    def to_dict(self) -> dict[str, str | int | None]:
        return {
            "scheme": self.scheme,
            "host": self.host,
            "port": self.port,
            "path": self.path,
            "query": self.query,
            "fragment": self.fragment,
        }


@dataclass
class Field:
    name: str
    values: list[str] = field(default_factory=list)

    def as_string(self, delimiter: str = ", ") -> str:
        return delimiter.join(self.values)


class Fields:
    """Case-insensitive collection of header fields.

    Setting a field whose name is already present replaces its values but keeps
    the position where the name was first seen.
    """

    def __init__(self, initial: Iterable[Field] | None = None):
        self._entries: dict[str, Field] = {}
        for item in initial or ():
            self.set_field(item)

    @classmethod
    def from_text(cls, text: str | None) -> "Fields":
        """Build fields from ``Key: Value`` lines."""
        return cls(parse_fields(text))

    def set_field(self, field: Field) -> None:
        self._entries[field.name.lower()] = field

    def remove_field(self, name: str) -> None:
        self._entries.pop(name.lower(), None)

    def get(self, name: str, default: Field | None = None) -> Field | None:
        return self._entries.get(name.lower(), default)

    def items(self) -> list[tuple[str, str]]:
        return [(f.name, f.as_string()) for f in self._entries.values()]

    def __getitem__(self, name: str) -> Field:
        return self._entries[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[Field]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"Fields({list(self._entries.values())!r})"


@dataclass(kw_only=True)
class AWSRequest:
    destination: URI
    method: str = "GET"
    fields: Fields = field(default_factory=Fields)
    body: BodyType = None


def parse_fields(text: str | None) -> list[Field]:
    """Parse newline separated ``Key: Value`` header lines.

    Parsing is lenient: ``Key:`` and lines without a colon produce an empty
    value instead of an error. Blank lines are skipped.
    """
    fields: list[Field] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        name, separator, value = line.partition(":")
        if not name.strip():
            warnings.warn(
                f"Header line {line.strip()!r} has no name, skipping it.",
                SignerWarning,
                stacklevel=2,
            )
            continue
        if not separator:
            warnings.warn(
                f"Header line {line.strip()!r} has no ':' separator, "
                "using an empty value.",
                SignerWarning,
                stacklevel=2,
            )
        fields.append(Field(name=name.strip(), values=[value.strip()]))
    return fields
