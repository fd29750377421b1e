"""
Tests for overdrop.merge module.

Tests folding resolved fragments including:
- Merge order and stream handling
- Stop-on-first-error behavior
- Deep merging of dicts
- YAML fragment merging
"""

from __future__ import annotations

import pytest

from overdrop.exceptions import ConfigError, FragmentReadError, MergeError
from overdrop.merge import deep_merge_dicts, load_merged_yaml, merge_fragments, yaml_merge
from overdrop.scanner import FragmentScanner

SHARED_PATH = "svc.d"


def _collect(acc, name, stream):
    return acc + [(name, stream.read())]


class TestMergeFragments:
    """Tests for merge_fragments."""

    def test_folds_in_mapping_order(self, write_fragment):
        """Test that fragments are merged in name order with their contents."""
        a = write_fragment(f"etc/{SHARED_PATH}/10-a.conf", "first")
        b = write_fragment(f"etc/{SHARED_PATH}/20-b.conf", "second")

        result = merge_fragments({"10-a.conf": a, "20-b.conf": b}, _collect, [])

        assert result == [("10-a.conf", b"first"), ("20-b.conf", b"second")]

    def test_empty_mapping_returns_initial(self):
        """Test that nothing to merge yields the initial accumulator."""
        initial = {"untouched": True}

        assert merge_fragments({}, _collect, initial) is initial

    def test_stream_is_binary_and_closed(self, write_fragment):
        """Test that merge functions receive a binary stream closed afterwards."""
        path = write_fragment(f"etc/{SHARED_PATH}/a.conf", "line1\nline2\n")
        seen = []

        def _lines(acc, name, stream):
            seen.append(stream)
            return acc + list(stream)

        result = merge_fragments({"a.conf": path}, _lines, [])

        assert result == [b"line1\n", b"line2\n"]
        assert seen[0].closed

    def test_open_failure_raises_fragment_read_error(self, tmp_path, write_fragment):
        """Test that a vanished fragment aborts the merge."""
        present = write_fragment(f"etc/{SHARED_PATH}/b.conf", "b")
        missing = tmp_path / "etc" / SHARED_PATH / "a.conf"

        with pytest.raises(FragmentReadError) as excinfo:
            merge_fragments({"a.conf": missing, "b.conf": present}, _collect, [])

        assert excinfo.value.name == "a.conf"
        assert excinfo.value.path == missing
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)

    def test_stops_at_first_merge_failure(self, write_fragment):
        """Test that later fragments are not visited after a failure."""
        paths = {
            name: write_fragment(f"etc/{SHARED_PATH}/{name}", name)
            for name in ("10-a.conf", "20-b.conf", "30-c.conf")
        }
        visited = []

        def _failing(acc, name, stream):
            visited.append(name)
            if name == "20-b.conf":
                raise ValueError("bad content")
            return acc

        with pytest.raises(MergeError) as excinfo:
            merge_fragments(paths, _failing, None)

        assert visited == ["10-a.conf", "20-b.conf"]
        assert excinfo.value.name == "20-b.conf"
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_overdrop_errors_propagate_unchanged(self, write_fragment):
        """Test that ConfigError from a merge function is not wrapped."""
        path = write_fragment(f"etc/{SHARED_PATH}/a.conf")

        def _reject(acc, name, stream):
            raise ConfigError("rejected")

        with pytest.raises(ConfigError, match="rejected"):
            merge_fragments({"a.conf": path}, _reject, None)


class TestDeepMergeDicts:
    """Tests for deep_merge_dicts."""

    def test_dict_deep_merge(self):
        """Test that nested dicts are merged key by key."""
        base = {"server": {"port": 80, "tls": {"enabled": False}}}
        overlay = {"server": {"tls": {"enabled": True}}}

        merged = deep_merge_dicts(base, overlay)

        assert merged == {"server": {"port": 80, "tls": {"enabled": True}}}

    def test_list_replacement(self):
        """Test that lists are replaced, not merged."""
        merged = deep_merge_dicts({"hosts": ["a", "b"]}, {"hosts": ["c"]})

        assert merged["hosts"] == ["c"]

    def test_scalar_overwrite(self):
        """Test that scalars and type changes take the overlay value."""
        merged = deep_merge_dicts({"level": "info", "limits": {"a": 1}}, {"level": "debug", "limits": 5})

        assert merged == {"level": "debug", "limits": 5}

    def test_inputs_not_mutated(self):
        """Test that neither input is modified."""
        base = {"a": {"b": 1}}
        overlay = {"a": {"c": 2}}

        deep_merge_dicts(base, overlay)

        assert base == {"a": {"b": 1}}
        assert overlay == {"a": {"c": 2}}


class TestYamlMerge:
    """Tests for YAML fragment merging."""

    def test_layered_yaml_fragments(self, tmp_path, write_fragment, link_fragment):
        """Test merging the winners of a layered scan."""
        write_fragment(f"usr/lib/{SHARED_PATH}/10-defaults.yaml", "log:\n  level: info\n  file: /var/log/svc\n")
        write_fragment(f"usr/lib/{SHARED_PATH}/20-limits.yaml", "limits:\n  open_files: 1024\n")
        write_fragment(f"etc/{SHARED_PATH}/10-defaults.yaml", "log:\n  level: warning\n")
        write_fragment(f"etc/{SHARED_PATH}/30-site.yaml", "log:\n  level: debug\nsite: lab\n")
        link_fragment(f"etc/{SHARED_PATH}/20-limits.yaml")
        scanner = FragmentScanner(
            [tmp_path / "usr/lib", tmp_path / "etc"], SHARED_PATH, allowed_extensions=["yaml"]
        )

        merged = load_merged_yaml(scanner)

        # 10-defaults comes from etc only, 20-limits is masked, 30-site wins last
        assert merged == {"log": {"level": "debug"}, "site": "lab"}

    def test_accepts_scan_result(self, write_fragment):
        """Test that an existing mapping can be merged directly."""
        path = write_fragment(f"etc/{SHARED_PATH}/a.yaml", "key: value\n")

        assert load_merged_yaml({"a.yaml": path}) == {"key": "value"}

    def test_empty_fragment_contributes_nothing(self, write_fragment):
        """Test that an empty YAML document is skipped."""
        empty = write_fragment(f"etc/{SHARED_PATH}/a.yaml", "")
        full = write_fragment(f"etc/{SHARED_PATH}/b.yaml", "key: 1\n")

        assert load_merged_yaml({"a.yaml": empty, "b.yaml": full}) == {"key": 1}

    def test_no_fragments(self, tmp_path):
        """Test that no fragments merge to an empty dict."""
        scanner = FragmentScanner([tmp_path / "missing"], SHARED_PATH)

        assert load_merged_yaml(scanner) == {}

    def test_invalid_yaml_raises_config_error(self, write_fragment):
        """Test that YAML syntax errors are reported as ConfigError."""
        path = write_fragment(f"etc/{SHARED_PATH}/bad.yaml", "key: [unclosed\n")

        with pytest.raises(ConfigError, match="bad.yaml"):
            load_merged_yaml({"bad.yaml": path})

    def test_non_mapping_raises_config_error(self, write_fragment):
        """Test that a top-level list is rejected."""
        path = write_fragment(f"etc/{SHARED_PATH}/list.yaml", "- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_merged_yaml({"list.yaml": path})

    def test_yaml_merge_with_merge_fragments(self, write_fragment):
        """Test yaml_merge as a plain merge function with a seeded accumulator."""
        path = write_fragment(f"etc/{SHARED_PATH}/a.yaml", "b: 2\n")

        merged = merge_fragments({"a.yaml": path}, yaml_merge, {"a": 1})

        assert merged == {"a": 1, "b": 2}
