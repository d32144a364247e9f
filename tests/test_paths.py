"""Tests for sandbox path resolution.

Covers lexical escapes, symlink escapes (including for paths that do not
exist yet) and the relative-path safety predicate.
"""

from __future__ import annotations

import os

import pytest

from toolwarden.core.errors import SystemToolExecutionError, ToolErrorCode
from toolwarden.sandbox.paths import (
    canonicalize,
    is_safe_relative_path,
    is_within,
    to_sandbox_relative,
    validate_path,
)


def _reason(excinfo: pytest.ExceptionInfo[SystemToolExecutionError]) -> str:
    return excinfo.value.details["reason"]


# =============================================================================
# validate_path
# =============================================================================


class TestValidatePath:
    """Tests for validate_path."""

    def test_relative_path_inside(self, sandbox_root):
        resolved = validate_path("src/main.py", sandbox_root)
        assert resolved == os.path.join(sandbox_root, "src", "main.py")

    def test_root_itself_is_valid(self, sandbox_root):
        assert validate_path(".", sandbox_root) == sandbox_root
        assert validate_path(sandbox_root, sandbox_root) == sandbox_root

    def test_result_is_normalized(self, sandbox_root):
        resolved = validate_path("src/./../src//main.py", sandbox_root)
        assert resolved == os.path.join(sandbox_root, "src", "main.py")

    def test_nonexistent_path_inside_is_valid(self, sandbox_root):
        resolved = validate_path("new/dir/file.txt", sandbox_root)
        assert resolved == os.path.join(sandbox_root, "new", "dir", "file.txt")

    def test_absolute_path_inside(self, sandbox_root):
        target = os.path.join(sandbox_root, "notes.txt")
        assert validate_path(target, sandbox_root) == target

    @pytest.mark.parametrize("target", ["../outside", "../../../etc/passwd", "src/../../x"])
    def test_traversal_escape(self, sandbox_root, target):
        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path(target, sandbox_root)

        assert excinfo.value.code == ToolErrorCode.TOOL_PERMISSION_DENIED
        assert _reason(excinfo) == "path_outside_sandbox"
        assert excinfo.value.details["attemptedPath"] == target
        assert excinfo.value.details["sandboxRoot"] == sandbox_root

    def test_absolute_escape(self, sandbox_root):
        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path("/etc/passwd", sandbox_root)
        assert _reason(excinfo) == "path_outside_sandbox"

    def test_sibling_with_common_prefix_is_outside(self, sandbox_root):
        sibling = sandbox_root + "-evil"
        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path(sibling, sandbox_root)
        assert _reason(excinfo) == "path_outside_sandbox"

    @pytest.mark.parametrize("target", ["", "   "])
    def test_empty_path(self, sandbox_root, target):
        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path(target, sandbox_root)
        assert _reason(excinfo) == "empty_path"

    @pytest.mark.parametrize("root", ["", "  "])
    def test_invalid_root(self, root):
        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path("file.txt", root)
        assert _reason(excinfo) == "invalid_sandbox_root"

    def test_symlink_escape(self, sandbox_root, outside_dir):
        os.symlink(outside_dir, os.path.join(sandbox_root, "link"))

        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path("link/secret.txt", sandbox_root)
        assert _reason(excinfo) == "resolved_path_outside_sandbox"

    def test_symlink_escape_for_missing_descendant(self, sandbox_root, outside_dir):
        os.symlink(outside_dir, os.path.join(sandbox_root, "link"))

        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path("link/not/yet/created.txt", sandbox_root)
        assert _reason(excinfo) == "resolved_path_outside_sandbox"

    def test_dangling_symlink_pointing_outside(self, sandbox_root, outside_dir):
        os.symlink(
            os.path.join(outside_dir, "missing.txt"), os.path.join(sandbox_root, "dangling")
        )

        with pytest.raises(SystemToolExecutionError) as excinfo:
            validate_path("dangling", sandbox_root)
        assert _reason(excinfo) == "resolved_path_outside_sandbox"

    def test_symlink_inside_sandbox_is_allowed(self, sandbox_root):
        os.symlink(os.path.join(sandbox_root, "src"), os.path.join(sandbox_root, "code"))
        assert validate_path("code/main.py", sandbox_root) == os.path.join(
            sandbox_root, "code", "main.py"
        )

    def test_symlinked_root(self, sandbox_root, tmp_path):
        alias = tmp_path / "alias"
        os.symlink(sandbox_root, alias)
        resolved = validate_path("notes.txt", str(alias))
        assert resolved == os.path.join(str(alias), "notes.txt")

    @pytest.mark.parametrize(
        "target", ["src/main.py", "src/../notes.txt", "new/dir/file.txt", "code/main.py", "."]
    )
    def test_repeated_calls_agree(self, sandbox_root, target):
        os.symlink(os.path.join(sandbox_root, "src"), os.path.join(sandbox_root, "code"))

        first = validate_path(target, sandbox_root)
        second = validate_path(target, sandbox_root)

        assert first == second
        assert validate_path(first, sandbox_root) == first


# =============================================================================
# Helpers
# =============================================================================


class TestCanonicalize:
    def test_missing_suffix_is_reappended(self, sandbox_root):
        assert canonicalize(os.path.join(sandbox_root, "a", "b")) == os.path.join(
            sandbox_root, "a", "b"
        )

    def test_resolves_existing_prefix(self, sandbox_root, outside_dir):
        os.symlink(outside_dir, os.path.join(sandbox_root, "link"))
        assert canonicalize(os.path.join(sandbox_root, "link", "x")) == os.path.join(
            outside_dir, "x"
        )


class TestIsWithin:
    def test_equal_and_nested(self):
        assert is_within("/a/b", "/a/b")
        assert is_within("/a/b/c", "/a/b")

    def test_outside(self):
        assert not is_within("/a/bc", "/a/b")
        assert not is_within("/a", "/a/b")


class TestIsSafeRelativePath:
    @pytest.mark.parametrize("path", ["src/main.py", "a/b/c", "file..txt", "./x"])
    def test_safe(self, path):
        assert is_safe_relative_path(path)

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "/etc/passwd",
            "\\windows",
            "C:\\Windows",
            "c:/temp",
            "\\\\server\\share",
            "//server/share",
            "../x",
            "a/../../b",
            "a\\..\\b",
        ],
    )
    def test_unsafe(self, path):
        assert not is_safe_relative_path(path)


def test_to_sandbox_relative(sandbox_root):
    assert to_sandbox_relative(os.path.join(sandbox_root, "src", "main.py"), sandbox_root) == (
        "src/main.py"
    )
    assert to_sandbox_relative(sandbox_root, sandbox_root) == "."
