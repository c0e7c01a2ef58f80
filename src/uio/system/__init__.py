# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/system/__init__.py

"""System-level helpers: errors, scoped cleanup, logging and display."""
