# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/storage/sftp.py

"""
SFTP backend (sftp://host[:port]/path/to/file.txt).

Credentials come from the config scopes and the locator (see
uio.config.credentials): `user` and `known_hosts` are always required, plus
either `password` or `identity` (with optional `identity_pass`).

Every operation opens its own (session, channel) pair and closes it before
returning; streams and listings own theirs until they are closed. Sessions
are never shared between operations.
"""

from __future__ import annotations

import contextlib
import functools
import io
import os
import socket
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

import lz4.frame
import paramiko
from loguru import logger

from uio.config.credentials import Credentials, resolve_credentials
from uio.config.manager import DEFAULT_TIMEOUT_MS
from uio.locator import Locator
from uio.system.exceptions import (
    AuthenticationError, ConfigurationError, ConnectionTimeoutError, TransportError, die
)
from .base import Backend, DirectoryEntry, error_entry, resolve_link, utc
from .listing import Listing
from .registry import register_backend
from .streams import ClosingReader, ClosingWriter

DEFAULT_PORT = 22

KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


# ---- Session / channel management ----

def _register_known_hosts(client: paramiko.SSHClient, known_hosts: str) -> None:
    """Add every host key line (ssh-keyscan format) to the client's host keys."""
    host_keys = client.get_host_keys()
    added = 0
    for line in known_hosts.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            entry = paramiko.hostkeys.HostKeyEntry.from_line(line)
        except (paramiko.hostkeys.InvalidHostKey, paramiko.SSHException) as e:
            raise ConfigurationError(f"Invalid known_hosts line: {e}") from e
        if entry is None or entry.key is None:
            continue
        for hostname in entry.hostnames:
            host_keys.add(hostname, entry.key.get_name(), entry.key)
        added += 1
    if not added:
        raise ConfigurationError("known_hosts contains no usable host key")


def load_private_key(key: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse private key content, trying each supported key type."""
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise ConfigurationError("Private key is encrypted, but no 'identity_pass' was given") from e
        except (paramiko.SSHException, ValueError):
            continue
    raise ConfigurationError("Could not load 'identity' as an RSA, ECDSA or Ed25519 private key")


def close_session_channel(session: Optional[paramiko.SSHClient],
                          channel: Optional[paramiko.SFTPClient]) -> None:
    """Close channel, then session. Failures are logged, never raised."""
    for resource, what in ((channel, "channel"), (session, "session")):
        if resource is None:
            continue
        try:
            resource.close()
        except Exception as e:
            logger.warning(f"Failed to close SFTP {what}: {e}")


def open_session_channel(locator: Locator,
                         credentials: Credentials,
                         timeout_ms: int = DEFAULT_TIMEOUT_MS) -> tuple[paramiko.SSHClient, paramiko.SFTPClient]:
    """Authenticate an SSH session and open an SFTP channel on it.

    Both connect and channel open are bounded by `timeout_ms`. Anything opened
    before a failure is closed again before the error propagates.
    """
    credentials.require_for_sftp()
    timeout = timeout_ms / 1000.0
    port = locator.port or DEFAULT_PORT

    session = paramiko.SSHClient()
    channel = None
    try:
        session.set_missing_host_key_policy(paramiko.RejectPolicy())
        _register_known_hosts(session, credentials.known_hosts)
        pkey = None
        if credentials.identity:
            pkey = load_private_key(credentials.private_key(), credentials.identity_pass)

        logger.debug(f"Connecting to {credentials.user}@{locator.host}:{port}")
        session.connect(
            locator.host,
            port=port,
            username=credentials.user,
            password=credentials.password,
            pkey=pkey,
            timeout=timeout,
            banner_timeout=timeout,
            auth_timeout=timeout,
            allow_agent=False,
            look_for_keys=False,
        )

        try:
            transport_channel = session.get_transport().open_session(timeout=timeout)
        except paramiko.SSHException as e:
            # paramiko only signals an expired channel-open wait in the message
            if "timeout" not in str(e).lower():
                raise
            raise socket.timeout(str(e)) from e
        transport_channel.invoke_subsystem("sftp")
        channel = paramiko.SFTPClient(transport_channel)
        return session, channel

    except ConfigurationError as e:
        close_session_channel(session, channel)
        raise ConfigurationError(f"{e} (for {locator})", locator=str(locator)) from e
    except paramiko.AuthenticationException as e:
        close_session_channel(session, channel)
        raise AuthenticationError(f"SSH authentication failed for {locator}: {e}", locator=str(locator)) from e
    except (TimeoutError, socket.timeout) as e:
        close_session_channel(session, channel)
        raise ConnectionTimeoutError(
            f"Timed out after {timeout_ms} ms connecting to {locator}", locator=str(locator)
        ) from e
    except (paramiko.SSHException, OSError, EOFError) as e:
        close_session_channel(session, channel)
        raise TransportError(f"SSH connection to {locator} failed: {e}", locator=str(locator)) from e
    except BaseException:
        close_session_channel(session, channel)
        raise


@contextlib.contextmanager
def session_channel(locator: Locator, credentials: Credentials, timeout_ms: int = DEFAULT_TIMEOUT_MS):
    """Yield an open (session, channel) pair and always close it afterwards."""
    session, channel = open_session_channel(locator, credentials, timeout_ms)
    try:
        yield session, channel
    finally:
        close_session_channel(session, channel)


# ---- Remote identity lookup ----

def parse_id_names(text: str) -> dict[int, str]:
    """Map numeric id -> name from `getent passwd` / `getent group` output."""
    id_to_name = {}
    for line in text.splitlines():
        parts = line.split(":")
        try:
            id_to_name[int(parts[2])] = parts[0]
        except (IndexError, ValueError):
            continue
    return id_to_name


def exec_text(session: paramiko.SSHClient, command: str, timeout: float) -> str:
    """Run `command` on the remote host and return its stdout.

    The timeout matters: hosts that don't allow a shell would otherwise hang.
    """
    _, stdout, _ = session.exec_command(command, timeout=timeout)
    try:
        output = stdout.read().decode("utf-8", errors="replace")
        exit_code = stdout.channel.recv_exit_status()
    finally:
        stdout.channel.close()
    if exit_code != 0:
        raise TransportError(f"'{command}' exited with status {exit_code}")
    return output


def load_id_names(session: paramiko.SSHClient, command: str, timeout: float) -> dict[int, str]:
    try:
        return parse_id_names(exec_text(session, command, timeout))
    except Exception as e:
        logger.debug(f"Couldn't resolve ids with '{command}', keeping numeric ids: {e}")
        return {}


@dataclass
class IdentityNames:
    """uid/gid -> name maps for one traversal."""
    users: dict[int, str] = field(default_factory=dict)
    groups: dict[int, str] = field(default_factory=dict)

    @classmethod
    def load(cls, session: paramiko.SSHClient, timeout: float) -> 'IdentityNames':
        return cls(
            users=load_id_names(session, "getent passwd", timeout),
            groups=load_id_names(session, "getent group", timeout),
        )

    def user(self, uid: Optional[int]) -> Union[str, int, None]:
        return self.users.get(uid, uid)

    def group(self, gid: Optional[int]) -> Union[str, int, None]:
        return self.groups.get(gid, gid)


def attrs_to_entry(channel: paramiko.SFTPClient,
                   names: IdentityNames,
                   locator: Locator,
                   extended: bool,
                   attrs: paramiko.SFTPAttributes) -> DirectoryEntry:
    mode = attrs.st_mode or 0
    is_dir = stat.S_ISDIR(mode)
    entry = DirectoryEntry(
        locator=str(locator.as_dir() if is_dir else locator.without_trailing_delimiter()),
        is_dir=is_dir,
        size=None if is_dir else attrs.st_size,
    )
    if extended:
        entry.accessed = utc(attrs.st_atime)
        entry.modified = utc(attrs.st_mtime)
        entry.owner = names.user(attrs.st_uid)
        entry.group = names.group(attrs.st_gid)
        entry.permissions = stat.filemode(mode)[1:]
        if stat.S_ISLNK(mode):
            target = channel.readlink(locator.without_trailing_delimiter().path)
            entry.symlink = resolve_link(locator.without_trailing_delimiter(), target)
    return entry


def _remove_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temp file {path}: {e}")


# ---- Backend ----

@register_backend("sftp")
class SFTPBackend(Backend):
    """Remote files over SFTP, one short-lived session per operation."""

    @property
    def settings(self):
        return self.config.sftp

    def credentials(self, locator: Locator) -> Credentials:
        return resolve_credentials(locator, self.config)

    def connect(self, locator: Locator) -> tuple[paramiko.SSHClient, paramiko.SFTPClient]:
        return open_session_channel(locator, self.credentials(locator), self.settings.timeout_ms)

    def session(self, locator: Locator):
        return session_channel(locator, self.credentials(locator), self.settings.timeout_ms)

    def open_read(self, locator: Locator, **opts) -> BinaryIO:
        session, channel = self.connect(locator)
        try:
            remote_file = channel.open(locator.path, "rb")
        except Exception as e:
            close_session_channel(session, channel)
            die(f"Could not open {locator}", e, locator=locator)
        return ClosingReader(
            remote_file,
            functools.partial(close_session_channel, session, channel),
            name=f"sftp read {locator}",
        )

    def open_write(self, locator: Locator, **opts) -> BinaryIO:
        """Open `locator` for writing.

        paramiko misbehaves with concurrent streamed uploads, so by default the
        bytes are spooled into a local lz4-compressed temp file and pushed over
        a fresh session when the stream is closed. The temp file is removed
        whatever the outcome.
        """
        if not self.settings.buffer_uploads:
            return self._open_streaming_write(locator)

        temp_dir = self.settings.temp_dir
        if temp_dir is not None:
            temp_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix="uio-sftp-", suffix="-temp.lz4", dir=temp_dir)
        os.close(fd)
        temp_path = Path(name)
        try:
            spool = lz4.frame.open(temp_path, mode="wb")
        except Exception:
            _remove_temp_file(temp_path)
            raise
        return ClosingWriter(
            spool,
            on_close=functools.partial(self._upload_spooled, temp_path, locator),
            cleanup=functools.partial(_remove_temp_file, temp_path),
            name=f"sftp upload {locator}",
        )

    def _upload_spooled(self, temp_path: Path, locator: Locator) -> None:
        with self.session(locator) as (_, channel):
            try:
                with lz4.frame.open(temp_path, mode="rb") as spooled:
                    channel.putfo(spooled, locator.path)
            except Exception as e:
                die(f"Could not upload to {locator}", e, locator=locator)
        logger.debug(f"Uploaded {locator}")

    def _open_streaming_write(self, locator: Locator) -> BinaryIO:
        session, channel = self.connect(locator)
        try:
            remote_file = channel.open(locator.path, "wb")
        except Exception as e:
            close_session_channel(session, channel)
            die(f"Could not open {locator} for writing", e, locator=locator)
        return ClosingWriter(
            remote_file,
            on_close=lambda: None,
            cleanup=functools.partial(close_session_channel, session, channel),
            name=f"sftp write {locator}",
        )

    def stat(self, locator: Locator, extended: bool = True) -> DirectoryEntry:
        with self.session(locator) as (session, channel):
            try:
                attrs = channel.stat(locator.path)
                names = IdentityNames.load(session, self.settings.timeout_seconds) if extended else IdentityNames()
                return attrs_to_entry(channel, names, locator, extended, attrs)
            except Exception as e:
                die(f"Could not stat {locator}", e, locator=locator)

    def delete(self, locator: Locator) -> None:
        with self.session(locator) as (_, channel):
            path = locator.without_trailing_delimiter().path
            try:
                if stat.S_ISDIR(channel.stat(path).st_mode or 0):
                    channel.rmdir(path)
                else:
                    channel.remove(path)
            except Exception as e:
                die(f"Could not delete {locator}", e, locator=locator)

    def mkdir(self, locator: Locator) -> None:
        with self.session(locator) as (_, channel):
            try:
                channel.mkdir(locator.without_trailing_delimiter().path)
            except Exception as e:
                die(f"Could not create directory at {locator}", e, locator=locator)

    def copy(self, source: Locator, destination: Locator) -> None:
        """Stream `source` from any backend straight into the destination channel."""
        with self.session(destination) as (_, channel):
            try:
                with self.registry.open_read(source) as src:
                    channel.putfo(src, destination.path)
            except Exception as e:
                die(f"Could not copy {source} to {destination}", e, locator=destination)

    def list(self, locator: Locator, recurse: bool = False, extended: bool = False) -> Iterator[DirectoryEntry]:
        session, channel = self.connect(locator)
        cleanup = functools.partial(close_session_channel, session, channel)
        try:
            root = locator.normalized()
            attrs = channel.stat(root.without_trailing_delimiter().path)
            names = IdentityNames.load(session, self.settings.timeout_seconds) if extended else IdentityNames()
            if stat.S_ISDIR(attrs.st_mode or 0):
                entries = self._walk(channel, names, root.as_dir(), recurse, extended)
            else:
                entries = iter([attrs_to_entry(channel, names, root, extended, attrs)])
        except Exception as e:
            cleanup()
            die(f"Could not list {locator}", e, locator=locator)
        return Listing(entries, cleanup, name=f"sftp list {locator}")

    def _walk(self,
              channel: paramiko.SFTPClient,
              names: IdentityNames,
              directory: Locator,
              recurse: bool,
              extended: bool) -> Iterator[DirectoryEntry]:
        try:
            children = sorted(
                channel.listdir_attr(directory.without_trailing_delimiter().path),
                key=lambda a: a.filename,
            )
        except Exception as e:
            yield error_entry(directory, e)
            return

        for attrs in children:
            if attrs.filename in (".", ".."):
                continue
            is_dir = stat.S_ISDIR(attrs.st_mode or 0)
            child = directory.child(attrs.filename, as_dir=is_dir)
            try:
                entry = attrs_to_entry(channel, names, child, extended, attrs)
            except Exception as e:
                yield error_entry(child, e)
                continue
            yield entry
            # A directory's attrs never describe a link, so this doesn't follow symlinks
            if recurse and is_dir:
                yield from self._walk(channel, names, child, recurse, extended)
