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

"""Exception hierarchy for overdrop.

Scanning for fragments never raises: missing directories and unreadable
entries are skipped. The exceptions below are only raised by the layers built
on top of the scan (loading a scan configuration file, merging fragment
contents). All exceptions inherit from OverdropError, allowing users to catch
all overdrop errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from overdrop import FragmentScanner, load_merged_yaml
        from overdrop.exceptions import ConfigError, FragmentReadError

        scanner = FragmentScanner(["/usr/lib", "/etc"], "my-svc/config.d")
        try:
            config = load_merged_yaml(scanner)
        except FragmentReadError as e:
            print(f"Could not read fragment: {e}")
        except ConfigError as e:
            print(f"Invalid fragment: {e}")
        ```

    Catching all overdrop errors:
        ```python
        from overdrop.exceptions import OverdropError

        try:
            config = load_merged_yaml(scanner)
        except OverdropError as e:
            print(f"overdrop error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "OverdropError",
    "ConfigError",
    "FragmentReadError",
    "MergeError",
]


class OverdropError(Exception):
    """Base exception for all overdrop errors.

    All overdrop-specific exceptions inherit from this class, allowing users
    to catch all overdrop errors with a single except clause if needed.
    """

    pass


class ConfigError(OverdropError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Scan configuration files (file not found, YAML parse errors, empty
        files, missing or wrongly typed fields)
    - Fragment contents rejected by the YAML merge function (syntax errors,
        top level not a mapping)

    Example:
        Catching configuration errors:
            ```python
            from overdrop.config import load_scan_config
            from overdrop.exceptions import ConfigError

            try:
                cfg = load_scan_config(Path("scan.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass


class FragmentReadError(OverdropError):
    """Raised when a resolved fragment cannot be opened for merging.

    The fragment was present when the directories were scanned but could not
    be opened afterwards (removed in between, permission denied, etc.).
    The original OSError is chained as ``__cause__``.

    Attributes:
        name: Fragment name that failed.
        path: Location that could not be opened.
    """

    def __init__(self, message: str, name: str, path: object) -> None:
        super().__init__(message)
        self.name = name
        self.path = path


class MergeError(OverdropError):
    """Raised when a caller-supplied merge function fails on a fragment.

    Exceptions that are already OverdropError subclasses propagate unchanged;
    anything else is wrapped in MergeError with the original exception
    chained as ``__cause__``.

    Attributes:
        name: Fragment name being merged when the failure occurred.
    """

    def __init__(self, message: str, name: str) -> None:
        super().__init__(message)
        self.name = name
