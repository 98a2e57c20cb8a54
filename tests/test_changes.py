"""Tests for change-set normalization and commit messages."""

import pytest

from reposync import ChangeKind, FileChange, ValidationError
from reposync.changes import format_commit_message, normalize_changes, summarize


class TestFileChange:
    def test_create_requires_content(self):
        with pytest.raises(ValidationError):
            FileChange("a.txt", ChangeKind.CREATE)

    def test_update_allows_empty_content(self):
        c = FileChange.update("a.txt", "")
        assert c.data() == b""

    def test_delete_rejects_content(self):
        with pytest.raises(ValidationError):
            FileChange("a.txt", ChangeKind.DELETE, "x")

    def test_content_type_checked(self):
        with pytest.raises(ValidationError):
            FileChange("a.txt", ChangeKind.CREATE, 42)

    def test_data_encodes_utf8(self):
        assert FileChange.create("a.txt", "héllo").data() == "héllo".encode("utf-8")
        assert FileChange.create("a.bin", b"\x00\xff").data() == b"\x00\xff"

    def test_delete_has_no_data(self):
        with pytest.raises(ValueError):
            FileChange.delete("a.txt").data()


class TestNormalize:
    def test_mapping_entries(self):
        changes = normalize_changes([
            {"path": "src/a.py", "content": "x", "changeKind": "create"},
            {"path": "b.txt", "content": "y", "change_kind": "update"},
            {"path": "old.md", "changeKind": "delete"},
        ])
        assert [(c.path, c.kind) for c in changes] == [
            ("src/a.py", ChangeKind.CREATE),
            ("b.txt", ChangeKind.UPDATE),
            ("old.md", ChangeKind.DELETE),
        ]

    def test_leading_slashes_stripped(self):
        changes = normalize_changes([{"path": "//src/a.py", "content": "x"}])
        assert changes[0].path == "src/a.py"

    def test_file_change_instances_normalized(self):
        changes = normalize_changes([FileChange.create("/a.txt", "x")])
        assert changes[0] == FileChange.create("a.txt", "x")

    def test_kind_defaults_to_update(self):
        changes = normalize_changes([{"path": "a.txt", "content": "x"}])
        assert changes[0].kind is ChangeKind.UPDATE

    def test_kind_inferred_from_exists(self):
        existing = {"a.txt"}
        changes = normalize_changes(
            [{"path": "a.txt", "content": "x"}, {"path": "b.txt", "content": "y"}],
            exists=existing.__contains__,
        )
        assert [c.kind for c in changes] == [ChangeKind.UPDATE, ChangeKind.CREATE]

    def test_order_preserved(self):
        paths = ["z.txt", "a.txt", "m/n.txt"]
        changes = normalize_changes([{"path": p, "content": p} for p in paths])
        assert [c.path for c in changes] == paths

    @pytest.mark.parametrize("path", ["", "/", "a/../b", "..", "a//b", "a/./b", "dir/"])
    def test_bad_paths(self, path):
        with pytest.raises(ValidationError):
            normalize_changes([{"path": path, "content": "x"}])

    def test_traversal_message(self):
        with pytest.raises(ValidationError, match="traversal"):
            normalize_changes([{"path": "../etc/passwd", "content": "x"}])

    def test_missing_path(self):
        with pytest.raises(ValidationError, match="no 'path'"):
            normalize_changes([{"content": "x"}])

    def test_unknown_kind(self):
        with pytest.raises(ValidationError, match="Unknown change kind"):
            normalize_changes([{"path": "a", "content": "x", "changeKind": "rename"}])

    def test_no_content_no_kind(self):
        with pytest.raises(ValidationError):
            normalize_changes([{"path": "a.txt"}])

    def test_delete_with_content_rejected(self):
        with pytest.raises(ValidationError):
            normalize_changes([{"path": "a.txt", "content": "x", "changeKind": "delete"}])

    def test_duplicate_paths(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            normalize_changes([
                {"path": "a.txt", "content": "x"},
                {"path": "/a.txt", "changeKind": "delete"},
            ])

    @pytest.mark.parametrize("paths", [
        ["pkg", "pkg/mod.py"],
        ["pkg/mod.py", "pkg"],
        ["a/b", "a/b/c/d.txt"],
    ])
    def test_file_and_directory_collision(self, paths):
        with pytest.raises(ValidationError, match="both a file and a directory") as exc_info:
            normalize_changes([{"path": p, "content": "x"} for p in paths])
        assert exc_info.value.path == min(paths, key=len)

    def test_delete_file_to_make_directory(self):
        changes = normalize_changes([
            {"path": "pkg", "changeKind": "delete"},
            {"path": "pkg/mod.py", "content": "x", "changeKind": "create"},
        ])
        assert [c.path for c in changes] == ["pkg", "pkg/mod.py"]

    def test_shared_prefix_is_not_a_directory(self):
        changes = normalize_changes([
            {"path": "pkg", "content": "x"},
            {"path": "pkg2/mod.py", "content": "y"},
            {"path": "pkg.d/mod.py", "content": "z"},
        ])
        assert len(changes) == 3

    def test_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            normalize_changes([])

    def test_non_mapping_entry(self):
        with pytest.raises(ValidationError):
            normalize_changes(["a.txt"])

    def test_error_carries_path(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_changes([{"path": "a/../b", "content": "x"}])
        assert exc_info.value.path == "a/../b"
        assert isinstance(exc_info.value, ValueError)


class TestCommitMessage:
    def test_single_create(self):
        assert format_commit_message([FileChange.create("a.txt", "x")]) == "+ a.txt"

    def test_single_update(self):
        assert format_commit_message([FileChange.update("a.txt", "x")]) == "~ a.txt"

    def test_single_delete(self):
        assert format_commit_message([FileChange.delete("a.txt")]) == "- a.txt"

    def test_multiple(self):
        changes = [
            FileChange.create("a", "1"),
            FileChange.create("b", "2"),
            FileChange.update("c", "3"),
            FileChange.delete("d"),
        ]
        assert format_commit_message(changes) == "Deploy: +2 ~1 -1"

    def test_omits_zero_counts(self):
        changes = [FileChange.update("a", "1"), FileChange.update("b", "2")]
        assert format_commit_message(changes) == "Deploy: ~2"

    def test_custom_message(self):
        assert format_commit_message([FileChange.delete("a")], "Cleanup") == "Cleanup"

    def test_placeholders(self):
        changes = [FileChange.create("a", "1"), FileChange.delete("b")]
        msg = format_commit_message(changes, "{default} ({total_count} files, {delete_count} gone)")
        assert msg == "Deploy: +1 -1 (2 files, 1 gone)"

    def test_unknown_braces_kept(self):
        changes = [FileChange.update("parser.py", "1")]
        assert format_commit_message(changes, "Fix {bug} in parser") == "Fix {bug} in parser"

    def test_doubled_braces_kept(self):
        changes = [FileChange.update("docs.md", "1")]
        assert format_commit_message(changes, "Use {{x}} syntax") == "Use {{x}} syntax"

    def test_placeholders_beside_other_braces(self):
        changes = [FileChange.create("a", "1")]
        msg = format_commit_message(changes, "{default}: render {name} ({create_count})")
        assert msg == "+ a: render {name} (1)"

    def test_summarize(self):
        summary = summarize([FileChange.create("a", "1"), FileChange.delete("b")])
        assert summary.create == ("a",)
        assert summary.delete == ("b",)
        assert summary.total == 2
