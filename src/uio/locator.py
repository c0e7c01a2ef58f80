# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/locator.py

"""
Scheme-qualified locators.

    scheme://[user@]host[:port]/absolute/path[?name=value&...]

A locator names a file or a directory on some backend. Directories are
written with a trailing delimiter ("sftp://host/data/") and files without
one, because most remote backends can't tell the two apart without a round
trip. Query attributes carry non-secret settings; secrets should come from
the configuration scopes (see uio.config). Secrets given as attributes are
still honoured but never appear in the string form, so they stay out of
error messages, logs and listings.

Within the string form, "%", "?" and "#" in the path are percent-encoded.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union
from urllib.parse import parse_qsl, unquote, urlencode

from uio.system.exceptions import InvalidLocatorError

DELIMITER = "/"

# Attributes that are resolved like any other but never written back out
SECRET_ATTRIBUTES = frozenset({"password", "pass", "identity", "identity_pass", "identity-pass"})

# Characters that would otherwise end the path when the locator is parsed again
_PATH_ESCAPES = str.maketrans({"%": "%25", "?": "%3F", "#": "%23"})

_LOCATOR_RE = re.compile(
    r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*)://"
    r"(?:(?P<user>[^@/?#]*)@)?"
    r"(?P<host>\[[^\]]*\]|[^:/?#]*)"
    r"(?::(?P<port>[^/?#]*))?"
    r"(?P<path>/[^?#]*)?"
    r"(?:\?(?P<query>[^#]*))?$"
)


def _freeze(attributes: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(attributes or {}))


@dataclass(frozen=True)
class Locator:
    """Immutable, parsed form of a scheme-qualified address."""

    scheme: str
    host: str = ""
    path: str = DELIMITER
    port: Optional[int] = None
    user: Optional[str] = None
    attributes: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not self.scheme:
            raise InvalidLocatorError("Locator needs a scheme")
        if self.scheme != self.scheme.lower():
            object.__setattr__(self, 'scheme', self.scheme.lower())
        if not self.path.startswith(DELIMITER):
            raise InvalidLocatorError(f"Locator path must be absolute, got {self.path!r}")
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, 'attributes', _freeze(self.attributes))

    # ---- Parsing / formatting ----

    @classmethod
    def parse(cls, text: Union[str, 'Locator']) -> 'Locator':
        """Parse `text` into a Locator, raising InvalidLocatorError if malformed."""
        if isinstance(text, Locator):
            return text
        match = _LOCATOR_RE.match(text or "")
        if not match:
            raise InvalidLocatorError(f"Expected scheme://[user@]host[:port]/path, got {text!r}")

        port = match.group("port")
        if port:
            if not port.isdigit():
                raise InvalidLocatorError(f"Invalid port {port!r} in {text!r}")
            port = int(port)
        else:
            port = None

        user = match.group("user")
        query = match.group("query")
        return cls(
            scheme=match.group("scheme"),
            host=match.group("host"),
            path=unquote(match.group("path") or DELIMITER),
            port=port,
            user=user or None,
            attributes=dict(parse_qsl(query, keep_blank_values=True)) if query else {},
        )

    @classmethod
    def from_local_path(cls, path: Union[str, Path]) -> 'Locator':
        """Build a file:// locator from a bare filesystem path."""
        resolved = Path(path).expanduser().absolute()
        text = resolved.as_posix()
        if str(path).endswith(("/", "\\")) and not text.endswith(DELIMITER):
            text += DELIMITER
        return cls(scheme="file", path=text)

    def __str__(self) -> str:
        """Wire form. Reserved path characters are percent-encoded and secret attributes left out."""
        authority = self.host
        if self.user:
            authority = f"{self.user}@{authority}"
        if self.port is not None:
            authority = f"{authority}:{self.port}"
        text = f"{self.scheme}://{authority}{self.path.translate(_PATH_ESCAPES)}"
        public = {key: value for key, value in self.attributes.items() if key not in SECRET_ATTRIBUTES}
        if public:
            text += "?" + urlencode(public)
        return text

    # ---- Path helpers ----

    @property
    def is_dir_like(self) -> bool:
        """True if the locator ends with the delimiter (directory convention)."""
        return self.path.endswith(DELIMITER)

    @property
    def name(self) -> str:
        return posixpath.basename(self.path.rstrip(DELIMITER))

    def with_path(self, path: str) -> 'Locator':
        return replace(self, path=path)

    def parent(self) -> 'Locator':
        """Parent directory, always with a trailing delimiter."""
        parent = posixpath.dirname(self.path.rstrip(DELIMITER)) or DELIMITER
        if not parent.endswith(DELIMITER):
            parent += DELIMITER
        return self.with_path(parent)

    def child(self, name: str, as_dir: bool = False) -> 'Locator':
        base = self.path if self.path.endswith(DELIMITER) else self.path + DELIMITER
        path = base + name.strip(DELIMITER)
        if as_dir:
            path += DELIMITER
        return self.with_path(path)

    def normalized(self) -> 'Locator':
        """Collapse repeated delimiters and resolve '.' and '..' segments."""
        path = posixpath.normpath(self.path)
        if path.startswith("//"):
            path = path[1:]
        if self.is_dir_like and path != DELIMITER:
            path += DELIMITER
        return self.with_path(path)

    def without_trailing_delimiter(self) -> 'Locator':
        if self.path == DELIMITER or not self.is_dir_like:
            return self
        return self.with_path(self.path.rstrip(DELIMITER))

    def as_dir(self) -> 'Locator':
        return self if self.is_dir_like else self.with_path(self.path + DELIMITER)

    def bare(self) -> 'Locator':
        """The same address without user and attributes, used for config scope lookup."""
        return replace(self, user=None, attributes={})


def to_locator(value: Union[str, Path, Locator]) -> Locator:
    """Coerce CLI input into a Locator, treating bare paths as local files."""
    if isinstance(value, Locator):
        return value
    if isinstance(value, Path) or "://" not in value:
        return Locator.from_local_path(value)
    return Locator.parse(value)
