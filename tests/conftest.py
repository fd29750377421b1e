"""
Pytest configuration and shared fixtures for overdrop tests.

This module provides reusable fixtures for building layered fragment
directories under a temporary path.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from overdrop.logging import SilentLogger, set_global_logger

SHARED_PATH = "liboverdrop.d"


@pytest.fixture(autouse=True)
def reset_global_logger():
    """Restore the silent global logger after each test."""
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def write_fragment(tmp_path: Path):
    """
    Factory fixture for creating fragment files under tmp_path.

    Usage:
        path = write_fragment("etc/liboverdrop.d/10-a.toml", "key = 1")
    """

    def _write(relpath: str, content: str = "") -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def link_fragment(tmp_path: Path):
    """
    Factory fixture for creating symlinked fragments under tmp_path.

    The target defaults to /dev/null, which masks the fragment.

    Usage:
        path = link_fragment("etc/liboverdrop.d/10-a.toml")
    """

    def _link(relpath: str, target: str = "/dev/null") -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, path)
        return path

    return _link


@pytest.fixture
def tree_basic(tmp_path: Path, write_fragment, link_fragment) -> Path:
    """
    Provide a three-layer tree (usr/lib -> run -> etc) of fragments.

    Layout (relative to the returned root, shared path liboverdrop.d):

        usr/lib: 01-a, 02-b, 03-c, 04-d, 09-masked (all .toml)
        run:     02-b, 03-c, 06-f (.toml), 05-e.toml -> /dev/null
        etc:     01-a, 03-c, 05-e, 07-g (.toml), 09-masked.toml -> /dev/null,
                 08-config-h.conf, config.conf, noextension, .hidden.conf,
                 a directory named subdir.toml and a dangling link dangling.toml
    """
    root = "tree-basic"
    layers = {
        "usr/lib": ["01-config-a.toml", "02-config-b.toml", "03-config-c.toml",
                    "04-config-d.toml", "09-config-masked.toml"],
        "run": ["02-config-b.toml", "03-config-c.toml", "06-config-f.toml"],
        "etc": ["01-config-a.toml", "03-config-c.toml", "05-config-e.toml",
                "07-config-g.toml", "08-config-h.conf", "config.conf",
                "noextension", ".hidden.conf"],
    }
    for layer, names in layers.items():
        for name in names:
            write_fragment(f"{root}/{layer}/{SHARED_PATH}/{name}", f"{layer}\n")

    link_fragment(f"{root}/run/{SHARED_PATH}/05-config-e.toml")
    link_fragment(f"{root}/etc/{SHARED_PATH}/09-config-masked.toml")
    link_fragment(f"{root}/etc/{SHARED_PATH}/dangling.toml", "does-not-exist.toml")
    (tmp_path / root / "etc" / SHARED_PATH / "subdir.toml").mkdir()

    return tmp_path / root
