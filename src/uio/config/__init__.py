# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/config/__init__.py

"""Configuration scopes and credential resolution."""

from .manager import Config, SFTPSettings, ensure_user_config
from .credentials import Credentials, resolve_credentials, reformat_private_key

__all__ = [
    'Config',
    'SFTPSettings',
    'ensure_user_config',
    'Credentials',
    'resolve_credentials',
    'reformat_private_key',
]
