# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the uio test suite.

The SFTP fixtures replace the session/channel factory with an in-process
fake whose channel serves a local directory, so the backend's traversal,
upload spooling and teardown run unchanged without a server.
"""

import errno
import os
import shutil
import sys
from pathlib import Path

import paramiko
import pytest
from loguru import logger

from uio.config.manager import Config
from uio.storage import BackendRegistry
import uio.storage.sftp as sftp_module

SFTP_HOST = "files.example.org"


@pytest.fixture(autouse=True)
def reset_loguru():
    """Restore the default loguru sink after tests that reconfigure logging."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME and the config overrides at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("UIO_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def local_tree(tmp_path):
    """/a/{x.txt, .hidden, b/{y.txt}} under tmp_path."""
    root = tmp_path / "a"
    (root / "b").mkdir(parents=True)
    (root / "x.txt").write_bytes(b"hello")
    (root / ".hidden").write_bytes(b"h")
    (root / "b" / "y.txt").write_bytes(b"world!")
    return root


# ---- Fake SFTP session/channel ----

class FakeStdout:
    def __init__(self, data: bytes, exit_code: int):
        self._data = data
        self.channel = FakeExecChannel(exit_code)

    def read(self) -> bytes:
        return self._data


class FakeExecChannel:
    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        self.closed = False

    def recv_exit_status(self) -> int:
        return self.exit_code

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Stands in for paramiko.SSHClient: answers getent and records close()."""

    def __init__(self, exec_outputs: dict):
        self.exec_outputs = exec_outputs
        self.commands = []
        self.closed = False

    def exec_command(self, command, timeout=None):
        self.commands.append((command, timeout))
        if command not in self.exec_outputs:
            return None, FakeStdout(b"", 127), None
        return None, FakeStdout(self.exec_outputs[command].encode(), 0), None

    def close(self) -> None:
        self.closed = True


class FakeSFTPChannel:
    """Stands in for paramiko.SFTPClient, serving files from a local root."""

    def __init__(self, root: Path, unreadable: set):
        self.root = root
        self.unreadable = unreadable
        self.closed = False

    def _local(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def stat(self, path):
        return paramiko.SFTPAttributes.from_stat(os.stat(self._local(path)))

    def lstat(self, path):
        return paramiko.SFTPAttributes.from_stat(os.lstat(self._local(path)))

    def listdir_attr(self, path="."):
        if path in self.unreadable:
            raise PermissionError(errno.EACCES, "Permission denied", path)
        local = self._local(path)
        result = [
            paramiko.SFTPAttributes.from_stat(os.lstat(local), "."),
            paramiko.SFTPAttributes.from_stat(os.lstat(local.parent), ".."),
        ]
        for name in os.listdir(local):
            result.append(paramiko.SFTPAttributes.from_stat(os.lstat(local / name), name))
        return result

    def open(self, path, mode="r"):
        return open(self._local(path), mode)

    def putfo(self, fl, remotepath):
        with open(self._local(remotepath), "wb") as f:
            shutil.copyfileobj(fl, f)

    def remove(self, path):
        os.remove(self._local(path))

    def rmdir(self, path):
        os.rmdir(self._local(path))

    def mkdir(self, path):
        os.mkdir(self._local(path))

    def readlink(self, path):
        return os.readlink(self._local(path))

    def close(self) -> None:
        self.closed = True


class FakeSFTPServer:
    """Factory patched in for open_session_channel; keeps every pair it opened."""

    def __init__(self, root: Path):
        self.root = root
        self.unreadable = set()
        self.exec_outputs = {
            "getent passwd": f"root:x:0:0:root:/root:/bin/sh\njoe:x:{os.getuid()}:{os.getgid()}::/home/joe:/bin/sh\n",
            "getent group": f"root:x:0:\nstaff:x:{os.getgid()}:\n",
        }
        self.opened = []
        self.failure = None

    def open_session_channel(self, locator, credentials, timeout_ms=10_000):
        credentials.require_for_sftp()
        if self.failure is not None:
            raise self.failure
        session = FakeSession(self.exec_outputs)
        channel = FakeSFTPChannel(self.root, self.unreadable)
        self.opened.append((session, channel))
        return session, channel

    @property
    def all_closed(self) -> bool:
        return all(session.closed and channel.closed for session, channel in self.opened)


@pytest.fixture
def sftp_server(tmp_path, monkeypatch):
    root = tmp_path / "remote"
    root.mkdir()
    server = FakeSFTPServer(root)
    monkeypatch.setattr(sftp_module, "open_session_channel", server.open_session_channel)
    return server


@pytest.fixture
def sftp_config(tmp_path):
    return Config.from_dict({
        "scopes": {
            f"sftp://{SFTP_HOST}/": {
                "user": "joe",
                "known_hosts": f"{SFTP_HOST} ssh-rsa AAAA",
                "password": "secret",
            },
        },
        "sftp": {"temp_dir": str(tmp_path / "spool")},
    })


@pytest.fixture
def registry(sftp_config):
    return BackendRegistry(sftp_config)


@pytest.fixture
def remote_tree(sftp_server):
    """/a/{x.txt, .hidden, b/{y.txt}} on the fake server."""
    root = sftp_server.root / "a"
    (root / "b").mkdir(parents=True)
    (root / "x.txt").write_bytes(b"hello")
    (root / ".hidden").write_bytes(b"h")
    (root / "b" / "y.txt").write_bytes(b"world!")
    return root
