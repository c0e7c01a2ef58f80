# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/config/credentials.py

"""
Credential resolution for remote backends.

Credentials for a locator are merged from the configuration scopes whose key
is a prefix of the locator, then from the locator itself (user@ and query
attributes), later sources overriding earlier ones.

SFTP attributes:

    user            login name
    known_hosts     host key line(s), as printed by `ssh-keyscan -t rsa [-p PORT] HOST`
    password        password
      -- OR --
    identity        private key content (not a path)
    identity_pass   private key passphrase (optional)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field

from uio.system.exceptions import ConfigurationError

if TYPE_CHECKING:
    from uio.locator import Locator
    from .manager import Config


KEY_LINE_WIDTH = 64

_KEY_RE = re.compile(r"^(-+[^-]+-+)([^-]+)(-+[^-]+-+)")

# Accept the hyphenated spellings used by older config files
_ALIASES = {
    "known-hosts": "known_hosts",
    "pass": "password",
    "identity-pass": "identity_pass",
}


def reformat_private_key(key: str) -> str:
    """Restore line breaks in a private key that was flattened to one line.

    Keys carried as flat config values often have their newlines replaced by
    spaces. Multi-line keys are returned untouched; single-line keys are split
    into header, body re-wrapped at 64 characters, and footer.
    """
    if "\n" in key:
        return key

    match = _KEY_RE.match(key)
    if not match:
        raise ConfigurationError(
            "Got a private key without line separators, tried to reformat it, "
            "but failed to match the header/body/footer pattern"
        )
    header, body, footer = match.groups()
    body = re.sub(r"\s", "", body)
    lines = [body[i:i + KEY_LINE_WIDTH] for i in range(0, len(body), KEY_LINE_WIDTH)]
    return "\n".join([header, *lines, footer])


class Credentials(BaseModel):
    """Resolved credential attributes for one locator."""

    model_config = ConfigDict(extra="allow", frozen=True)

    user: Optional[str] = None
    known_hosts: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    identity: Optional[str] = Field(default=None, repr=False)
    identity_pass: Optional[str] = Field(default=None, repr=False)

    @classmethod
    def from_attributes(cls, attributes: dict[str, str]) -> 'Credentials':
        normalized = {_ALIASES.get(key, key): value for key, value in attributes.items()}
        return cls(**normalized)

    def require_for_sftp(self) -> None:
        """Validate that all fields the SFTP backend needs are present."""
        if not self.user:
            raise ConfigurationError("Expected 'user', but got none")
        if not self.known_hosts:
            raise ConfigurationError("Expected 'known_hosts', but got none")
        if not (self.password or self.identity):
            raise ConfigurationError("Expected either 'password' or 'identity' to be present, but got neither")
        if self.identity_pass and not self.identity:
            raise ConfigurationError("Got 'identity_pass' without 'identity'")

    def private_key(self) -> Optional[str]:
        """The identity with line breaks restored, or None."""
        if not self.identity:
            return None
        return reformat_private_key(self.identity)


def resolve_credentials(locator: Locator, config: Optional[Config] = None) -> Credentials:
    """Merge config scope attributes and locator attributes for `locator`."""
    attributes = dict(config.scope_for(locator)) if config is not None else {}
    attributes.update(locator.attributes)
    if locator.user:
        attributes["user"] = locator.user
    return Credentials.from_attributes(attributes)
