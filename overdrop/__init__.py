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

"""overdrop - overlays and drop-ins

A Python library (and small CLI) for services shipped as part of a stateless,
image-based operating system. It scans configuration fragments across
layered base directories, such as factory defaults in /usr/lib, runtime
overrides in /run and administrator overrides in /etc.

overdrop provides:

- Fragment scanning with last-directory-wins override semantics
- Masking of lower-priority fragments with /dev/null symlinks
- Dotfile and extension filtering
- Folding of the resolved fragments through a caller-supplied merge function
- Ready-made deep merging of YAML fragments

Quick Start:
Show the fragments a service would load:

    $ overdrop scan my-svc/config.d --ext toml

Merge YAML fragments into one document:

    $ overdrop merge my-svc/config.d --ext yaml

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Scan configuration fragments across layered drop-in directories"

# Re-export commonly used functions for convenience
from overdrop.config import ScanConfig, load_scan_config
from overdrop.exceptions import (
    ConfigError,
    FragmentReadError,
    MergeError,
    OverdropError,
)
from overdrop.merge import deep_merge_dicts, load_merged_yaml, merge_fragments, yaml_merge
from overdrop.scanner import FragmentScanner, fragment_extension, scan_fragments

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "FragmentScanner",
    "scan_fragments",
    "fragment_extension",
    "merge_fragments",
    "deep_merge_dicts",
    "yaml_merge",
    "load_merged_yaml",
    "ScanConfig",
    "load_scan_config",
    "OverdropError",
    "ConfigError",
    "FragmentReadError",
    "MergeError",
]
