# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/system/display.py

"""Formatting of listing entries and size summaries for the CLI."""

from dataclasses import dataclass

import humanize

from uio.storage.base import DirectoryEntry

MODIFIED_FORMAT = "%Y-%m-%d %H:%M"


def human_size(n: int) -> str:
    """Size with a binary unit suffix, e.g. 1.0K, 234M, 2.0G."""
    return humanize.naturalsize(n, gnu=True)


def plural(n: int) -> str:
    """Plural suffix: 's' unless n ends in 1 (except 11)."""
    return "" if n % 10 == 1 and n != 11 else "s"


def format_entry(entry: DirectoryEntry, long: bool = False, human_readable: bool = False) -> str:
    """One `ls` output line for `entry`."""
    name = entry.locator
    if entry.symlink:
        name += f" -> {entry.symlink}"
    if entry.error is not None:
        name += f" -- {entry.error}"

    if not long:
        return name

    size = ""
    if entry.size is not None:
        size = human_size(entry.size) if human_readable else str(entry.size)
    modified = entry.modified.strftime(MODIFIED_FORMAT) if entry.modified else ""
    pattern = "{:>9} {:<10} {:<10} {:>16} {:>6} {}" if human_readable else "{:>9} {:<10} {:<10} {:>16} {:>11} {}"
    return pattern.format(
        entry.permissions or "",
        "" if entry.owner is None else str(entry.owner),
        "" if entry.group is None else str(entry.group),
        modified,
        size,
        name,
    )


@dataclass
class ListingSummary:
    """Running totals over a listing."""
    size: int = 0
    files: int = 0
    dirs: int = 0

    def add(self, entry: DirectoryEntry) -> None:
        if entry.is_dir:
            self.dirs += 1
        elif entry.size is not None:
            self.files += 1
            self.size += entry.size

    def render(self, human_readable: bool = False) -> str:
        if human_readable:
            size = human_size(self.size)
        else:
            size = f"{self.size} byte{plural(self.size)}"
        return (f"{size}, {self.files} file{plural(self.files)}, "
                f"{self.dirs} dir{plural(self.dirs)}")
