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

"""Folding resolved fragments into a single configuration.

The scanner only decides *which* files make up a configuration. This module
reads them, in fragment-name order, and hands each one to a merge function
supplied by the caller, which owns the actual parsing.

Merge Behavior:
    merge_fragments stops at the first failure:

    - A fragment that cannot be opened raises FragmentReadError
    - A merge function raising an OverdropError propagates it unchanged
    - A merge function raising anything else raises MergeError

YAML Fragments:
    yaml_merge is a ready-made merge function for YAML fragments. It performs
    deep merging with "last wins" semantics:

    - **Dicts**: Recursively merged (keys from overlay override base)
    - **Lists**: Completely replaced (NOT appended/extended)
    - **Scalars**: Overwritten (strings, numbers, booleans)

Example:
    Merge YAML fragments:
        ```python
        from overdrop import FragmentScanner
        from overdrop.merge import load_merged_yaml

        scanner = FragmentScanner(
            ["/usr/lib", "/run", "/etc"], "my-svc/config.d", allowed_extensions=["yaml"]
        )
        config = load_merged_yaml(scanner)
        ```

    Custom merge function:
        ```python
        from overdrop.merge import merge_fragments

        def collect_lines(acc, name, stream):
            return acc + [line.rstrip(b"\\n") for line in stream]

        lines = merge_fragments(scanner.scan(), collect_lines, [])
        ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import os
from typing import Any, BinaryIO, TypeVar, Union

import yaml

from overdrop.exceptions import (
    ConfigError,
    FragmentReadError,
    MergeError,
    OverdropError,
)
from overdrop.logging import get_global_logger
from overdrop.scanner import FragmentScanner

__all__ = ["deep_merge_dicts", "load_merged_yaml", "merge_fragments", "yaml_merge"]

T = TypeVar("T")

MergeFunc = Callable[[T, str, BinaryIO], T]


def merge_fragments(
    fragments: Mapping[str, Union[str, "os.PathLike[str]"]],
    merge_fn: MergeFunc[T],
    initial: T,
) -> T:
    """Folds the contents of resolved fragments into an accumulator.

    Fragments are visited in the mapping's iteration order, which for a scan
    result is ascending by name. Each file is opened in binary mode and
    closed again once merge_fn returns.

    Args:
        fragments: Fragment name to location, as returned by a scan.
        merge_fn: Called as ``merge_fn(acc, name, stream)``; returns the new
            accumulator.
        initial: Starting accumulator.

    Returns:
        The accumulator after all fragments were merged.

    Raises:
        FragmentReadError: A fragment could not be opened.
        MergeError: merge_fn raised a non-overdrop exception.
        OverdropError: Any overdrop error raised by merge_fn, unchanged.
    """
    logger = get_global_logger()

    acc = initial
    for name, path in fragments.items():
        logger.verbose("MERGE", f"Merging fragment '{name}' from '{path}'")
        try:
            stream = open(path, "rb")
        except OSError as err:
            raise FragmentReadError(
                f"cannot open fragment '{name}' at {path}: {err}", name, path
            ) from err
        with stream:
            try:
                acc = merge_fn(acc, name, stream)
            except OverdropError:
                raise
            except Exception as err:
                raise MergeError(f"failed to merge fragment '{name}': {err}", name) from err
    return acc


def deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merges two dicts with "overlay wins" semantics.

    Merge behavior:

    - dict + dict -> deep merge
    - list + list -> overlay REPLACES base (not concatenated)
    - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.

    Args:
        base: The base dictionary.
        overlay: The overlay dictionary that takes precedence.

    Returns:
        A new dictionary with the merged contents.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = deep_merge_dicts(result[k], v)
        else:
            # Replace lists and scalars entirely
            result[k] = v
    return result


def yaml_merge(acc: dict[str, Any], name: str, stream: BinaryIO) -> dict[str, Any]:
    """Merge function parsing one YAML fragment into the accumulator.

    Empty fragments contribute nothing.

    Raises:
        ConfigError: Invalid YAML, or top level is not a mapping.
    """
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML fragment '{name}': {err}") from err
    if data is None:
        get_global_logger().debug("MERGE", f"Fragment '{name}' is empty")
        return acc
    if not isinstance(data, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict) in fragment '{name}'")
    return deep_merge_dicts(acc, data)


def load_merged_yaml(
    source: FragmentScanner | Mapping[str, Union[str, "os.PathLike[str]"]],
) -> dict[str, Any]:
    """Scans (when given a scanner) and deep-merges all YAML fragments.

    Args:
        source: A FragmentScanner to scan, or an existing scan result.

    Returns:
        The merged configuration. Empty if there are no fragments.

    Raises:
        FragmentReadError: A fragment could not be opened.
        ConfigError: A fragment is not valid YAML or not a mapping.
    """
    fragments = source.scan() if isinstance(source, FragmentScanner) else source
    return merge_fragments(fragments, yaml_merge, {})
