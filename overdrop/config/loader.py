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

"""Scan configuration loading for overdrop.

A scan configuration describes where a service looks for its fragments. It
can be built in code or loaded from a small YAML file:

    ```yaml
    base_dirs:
      - /usr/lib
      - /run
      - /etc
    shared_path: my-svc/config.d
    ignore_dotfiles: true
    allowed_extensions: [toml]
    ```

Fields:

- base_dirs (required): Non-empty list of base directories, lowest priority
    first.
- shared_path (required): Relative path appended to every base directory.
- ignore_dotfiles (optional, default false): Skip names starting with a dot.
- allowed_extensions (optional, default empty): Bare extensions to accept.
    Empty accepts every name.

Error Handling:
    - ConfigError: File doesn't exist, YAML parse errors, empty files, or
        missing/invalid fields
    - All errors are chained with "from err" for better debugging

Example:
    Load a configuration and scan:
        ```python
        from pathlib import Path
        from overdrop import FragmentScanner
        from overdrop.config import load_scan_config

        cfg = load_scan_config(Path("scan.yaml"))
        fragments = FragmentScanner.from_config(cfg).scan()
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from overdrop.exceptions import ConfigError
from overdrop.logging import get_global_logger

# Factory defaults, runtime overlay, administrator overrides.
DEFAULT_BASE_DIRS: tuple[str, ...] = ("/usr/lib", "/run", "/etc")

_KNOWN_KEYS = frozenset(
    {"base_dirs", "shared_path", "ignore_dotfiles", "allowed_extensions"}
)

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class ScanConfig:
    """Settings for one fragment scan.

    Attributes:
        base_dirs: Base directories, lowest priority first.
        shared_path: Relative path appended to every base directory.
        ignore_dotfiles: Whether names starting with a dot are ignored.
        allowed_extensions: Bare extensions to accept; empty accepts all.
    """

    base_dirs: tuple[str, ...]
    shared_path: str
    ignore_dotfiles: bool = False
    allowed_extensions: tuple[str, ...] = ()


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """Loads a YAML file and returns the parsed Python object.

    Args:
        p: Path to the YAML file to load.

    Returns:
        The parsed Python object from the YAML file.

    Raises:
        ConfigError: When file does not exist, invalid YAML (parse error), or empty files.
    """
    if not p.exists():
        raise ConfigError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Error reading {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    return data


# -------------------------------
# Field validation
# -------------------------------


def _string_list(raw: Any, field: str, source: Path) -> tuple[str, ...]:
    if not isinstance(raw, list):
        raise ConfigError(f"'{field}' must be a list in {source}")
    for item in raw:
        if not isinstance(item, str) or not item:
            raise ConfigError(
                f"'{field}' entries must be non-empty strings in {source}: {item!r}"
            )
    return tuple(raw)


def validate_extensions(extensions: tuple[str, ...], source: str | Path) -> None:
    """Rejects extensions written with a leading dot.

    Extension matching is exact, so ".toml" would never match anything.

    Args:
        extensions: Bare extensions to check.
        source: Where the extensions came from (used in error messages).

    Raises:
        ConfigError: If any extension starts with a dot.
    """
    dotted = [ext for ext in extensions if ext.startswith(".")]
    if dotted:
        raise ConfigError(
            f"'allowed_extensions' must not include the leading dot in {source}: "
            f"{', '.join(dotted)}"
        )


def parse_scan_config(data: Any, source: Path) -> ScanConfig:
    """Validates an already-parsed mapping and builds a ScanConfig.

    Args:
        data: Parsed YAML document.
        source: Where the document came from (used in error messages).

    Returns:
        The validated scan configuration.

    Raises:
        ConfigError: If the document is not a mapping, a required field is
            missing, or a field has the wrong type.
    """
    logger = get_global_logger()

    if not isinstance(data, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict): {source}")

    for key in sorted(set(data) - _KNOWN_KEYS, key=str):
        logger.warning("CONFIG", f"Ignoring unknown key '{key}' in {source}")

    if "base_dirs" not in data:
        raise ConfigError(f"missing required field 'base_dirs' in {source}")
    base_dirs = _string_list(data["base_dirs"], "base_dirs", source)
    if not base_dirs:
        raise ConfigError(f"'base_dirs' must not be empty in {source}")

    shared_path = data.get("shared_path")
    if not isinstance(shared_path, str) or not shared_path:
        raise ConfigError(f"'shared_path' must be a non-empty string in {source}")

    ignore_dotfiles = data.get("ignore_dotfiles", False)
    if not isinstance(ignore_dotfiles, bool):
        raise ConfigError(f"'ignore_dotfiles' must be true or false in {source}")

    raw_extensions = data.get("allowed_extensions")
    if raw_extensions is None:
        raw_extensions = []
    allowed_extensions = _string_list(raw_extensions, "allowed_extensions", source)
    validate_extensions(allowed_extensions, source)

    return ScanConfig(
        base_dirs=base_dirs,
        shared_path=shared_path,
        ignore_dotfiles=ignore_dotfiles,
        allowed_extensions=allowed_extensions,
    )


# -------------------------------
# Public API
# -------------------------------


def load_scan_config(config_path: Path) -> ScanConfig:
    """Loads a scan configuration from a YAML file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The validated scan configuration.

    Raises:
        ConfigError: On missing file, YAML parse errors, empty files, or
            invalid fields.
    """
    logger = get_global_logger()
    config_path = Path(config_path)

    logger.verbose("CONFIG", f"Loading scan configuration: {config_path}")
    data = _load_yaml_file(config_path)
    config = parse_scan_config(data, config_path)

    logger.debug("CONFIG", f"Base directories: {', '.join(config.base_dirs)}")
    logger.debug("CONFIG", f"Shared path: {config.shared_path}")
    return config
