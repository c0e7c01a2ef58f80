# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/cli/__init__.py

"""Command Line Interface package for uio."""

from .main import main, app

__all__ = ['main', 'app']
