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

"""Scan configuration for overdrop.

Public API:

- ScanConfig: Immutable settings for a fragment scan
- load_scan_config: Load and validate a ScanConfig from a YAML file
- DEFAULT_BASE_DIRS: Conventional /usr/lib -> /run -> /etc ordering

Example:
    Basic usage:

        from pathlib import Path
        from overdrop.config import load_scan_config

        cfg = load_scan_config(Path("scan.yaml"))
        print(cfg.shared_path)  # "my-svc/config.d"

"""

from .loader import DEFAULT_BASE_DIRS, ScanConfig, load_scan_config

__all__ = ["DEFAULT_BASE_DIRS", "ScanConfig", "load_scan_config"]
