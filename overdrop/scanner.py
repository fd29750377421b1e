# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration fragment scanning.

This module resolves the effective set of configuration fragments for a
service following the "base directories + drop-ins" convention of stateless,
image-based systems. A shared relative path (e.g. ``my-svc/config.d``) is
appended to each base directory and the resulting directories are scanned in
order of increasing priority.

Scan Rules:

- Fragments are identified by their file name (e.g. ``50-limits.toml``).
- On name collision the directory scanned last wins (``/etc`` overrides
  ``/usr/lib`` when listed after it).
- A fragment symlinked to ``/dev/null`` removes any fragment of the same name
  contributed by earlier directories. A later directory may reintroduce it.
- Dotfiles are ignored when ``ignore_dotfiles`` is set; when a set of allowed
  extensions is given, only names with one of those extensions are considered.
  Filtered names are invisible: they neither contribute nor mask.
- Directories, special files and symlinks not pointing at ``/dev/null``
  contribute nothing and remove nothing.

Error Handling:
    Scanning never raises for environmental reasons. Missing or unreadable
    directories are skipped, as are individual entries whose metadata cannot
    be read or whose name cannot be decoded with the filesystem encoding.

Example:
    Scan fragments under /usr/lib, /run and /etc:
        ```python
        from overdrop.scanner import FragmentScanner

        scanner = FragmentScanner(
            ["/usr/lib", "/run", "/etc"],
            "my-svc/config.d",
            allowed_extensions=["toml"],
        )
        for name, path in scanner.scan().items():
            print(f"fragment '{name}' located at '{path}'")
        ```
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import os
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Union

from overdrop.logging import Logger, get_global_logger

if TYPE_CHECKING:
    from overdrop.config.loader import ScanConfig

__all__ = ["FragmentScanner", "fragment_extension", "scan_fragments"]

StrPath = Union[str, "os.PathLike[str]"]

# Link target marking a masked fragment; compared as a literal string.
DEVNULL = "/dev/null"


def fragment_extension(name: str) -> str | None:
    """Returns the extension used for filtering a fragment name.

    The extension is the text after the final dot. A name whose only dot is
    the leading one (``.hidden``) has no extension, while a name ending in a
    dot (``name.``) has the empty extension.

    Args:
        name: Bare file name.

    Returns:
        The extension without its dot, or None if the name has none.

    Example:
        ```python
        fragment_extension("10-base.toml")   # "toml"
        fragment_extension(".hidden.conf")   # "conf"
        fragment_extension(".hidden")        # None
        fragment_extension("noextension")    # None
        ```
    """
    if name == "..":
        return None
    before, dot, after = name.rpartition(".")
    if not dot or not before:
        return None
    return after


def _is_representable(name: str) -> bool:
    """Whether a directory entry name decodes cleanly with the fs encoding.

    Undecodable bytes come back from the OS as lone surrogates, which fail a
    strict re-encode.
    """
    try:
        name.encode(sys.getfilesystemencoding())
    except UnicodeEncodeError:
        return False
    return True


def _fragment_sort_key(name: str) -> bytes:
    return os.fsencode(name)


def _check_sequence(value: object, what: str) -> None:
    if isinstance(value, (str, bytes, os.PathLike)):
        raise TypeError(
            f"{what} must be a collection, not a single {type(value).__name__}"
        )


class FragmentScanner:
    """Scanner for configuration fragments across layered directories.

    The scanner holds only its immutable configuration; every call to
    :meth:`scan` walks the filesystem again and returns a new mapping, so an
    instance can be shared freely between threads.

    Attributes:
        dirs: Directories to scan, lowest priority first.
        ignore_dotfiles: Whether names starting with ``.`` are ignored.
        allowed_extensions: Extensions to accept (without dot). Empty means
            every name is accepted.
    """

    __slots__ = ("_dirs", "_ignore_dotfiles", "_allowed_extensions")

    def __init__(
        self,
        base_dirs: Iterable[StrPath],
        shared_path: StrPath,
        ignore_dotfiles: bool = False,
        allowed_extensions: Iterable[str] = (),
    ) -> None:
        """Initialize the scanner. No filesystem access takes place.

        Args:
            base_dirs: Base components of the directories holding fragments,
                in order of increasing priority.
            shared_path: Relative path from each base directory to the
                directory holding fragments.
            ignore_dotfiles: Whether to ignore hidden files (name starting
                with ``.``).
            allowed_extensions: Only consider files whose extension is listed
                here (bare, no leading dot, case-sensitive). An empty
                collection allows any name.

        Raises:
            TypeError: If base_dirs or allowed_extensions is a single string
                or path instead of a collection.
        """
        _check_sequence(base_dirs, "base_dirs")
        _check_sequence(allowed_extensions, "allowed_extensions")
        shared = Path(shared_path)
        self._dirs: tuple[Path, ...] = tuple(Path(base) / shared for base in base_dirs)
        self._ignore_dotfiles = bool(ignore_dotfiles)
        self._allowed_extensions: frozenset[str] = frozenset(allowed_extensions)

    @classmethod
    def from_config(cls, config: ScanConfig) -> FragmentScanner:
        """Build a scanner from a loaded :class:`~overdrop.config.ScanConfig`."""
        return cls(
            config.base_dirs,
            config.shared_path,
            ignore_dotfiles=config.ignore_dotfiles,
            allowed_extensions=config.allowed_extensions,
        )

    @property
    def dirs(self) -> tuple[Path, ...]:
        return self._dirs

    @property
    def ignore_dotfiles(self) -> bool:
        return self._ignore_dotfiles

    @property
    def allowed_extensions(self) -> frozenset[str]:
        return self._allowed_extensions

    def __repr__(self) -> str:
        dirs = ", ".join(str(d) for d in self._dirs)
        exts = ", ".join(sorted(self._allowed_extensions))
        return (
            f"FragmentScanner(dirs=[{dirs}], ignore_dotfiles={self._ignore_dotfiles}, "
            f"allowed_extensions=[{exts}])"
        )

    def scan(self, logger: Logger | None = None) -> dict[str, Path]:
        """Scan unique configuration fragments from the configured directories.

        Directories are processed in order; fragments found in directories
        scanned later override fragments of the same name found earlier.

        Args:
            logger: Logger for tracing the scan. Defaults to the global logger.

        Returns:
            A new dict mapping fragment name to the path of the winning file,
                ordered by name (byte-wise on the filesystem encoding).
        """
        if logger is None:
            logger = get_global_logger()

        files_map: dict[str, Path] = {}
        for scan_dir in self._dirs:
            logger.debug("SCAN", f"Scanning directory '{scan_dir}'")
            for entry in _iter_entries(scan_dir, logger):
                self._apply_entry(files_map, scan_dir, entry, logger)

        logger.verbose("SCAN", f"Resolved {len(files_map)} fragment(s)")
        return {name: files_map[name] for name in sorted(files_map, key=_fragment_sort_key)}

    def _accepts_name(self, name: str) -> bool:
        if self._ignore_dotfiles and name.startswith("."):
            return False
        if self._allowed_extensions:
            extension = fragment_extension(name)
            if extension is None or extension not in self._allowed_extensions:
                return False
        return True

    def _apply_entry(
        self,
        files_map: dict[str, Path],
        scan_dir: Path,
        entry: os.DirEntry[str],
        logger: Logger,
    ) -> None:
        """Fold one directory entry into the map being built."""
        name = entry.name
        if not _is_representable(name):
            logger.debug("SCAN", f"Skipping undecodable name {name!r} in '{scan_dir}'")
            return
        if not self._accepts_name(name):
            return

        fpath = scan_dir / name
        try:
            is_file = entry.is_file()
        except OSError as err:
            logger.debug("SCAN", f"Skipping '{fpath}': {err}")
            return

        if is_file:
            logger.debug("SCAN", f"Found config file '{name}' at '{fpath}'")
            files_map[name] = fpath
            return

        # Not a regular file: only a symlink to /dev/null has an effect.
        try:
            if not entry.is_symlink():
                return
            target = os.readlink(fpath)
        except OSError as err:
            logger.debug("SCAN", f"Skipping '{fpath}': {err}")
            return
        if target == DEVNULL:
            logger.debug("SCAN", f"Nulled config file '{fpath}'")
            files_map.pop(name, None)


def _iter_entries(scan_dir: Path, logger: Logger) -> Iterator[os.DirEntry[str]]:
    """Yield the immediate entries of scan_dir, stopping quietly on errors."""
    try:
        it = os.scandir(scan_dir)
    except OSError as err:
        logger.debug("SCAN", f"Skipping directory '{scan_dir}': {err}")
        return
    with it:
        while True:
            try:
                entry = next(it)
            except StopIteration:
                return
            except OSError as err:
                logger.debug("SCAN", f"Stopped listing '{scan_dir}': {err}")
                return
            yield entry


def scan_fragments(
    base_dirs: Iterable[StrPath],
    shared_path: StrPath,
    ignore_dotfiles: bool = False,
    allowed_extensions: Iterable[str] = (),
    logger: Logger | None = None,
) -> dict[str, Path]:
    """Scan fragments in one call, without keeping a scanner around.

    Equivalent to ``FragmentScanner(...).scan(logger)``; see
    :class:`FragmentScanner` for the meaning of the arguments.

    Returns:
        A dict mapping fragment name to the path of the winning file, ordered
            by name.
    """
    scanner = FragmentScanner(
        base_dirs,
        shared_path,
        ignore_dotfiles=ignore_dotfiles,
        allowed_extensions=allowed_extensions,
    )
    return scanner.scan(logger=logger)
