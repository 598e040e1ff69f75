"""Tests for sidecar storage and file sync."""

import json
from pathlib import Path

import pytest

from line_anchors.anchors import AnchorEngine
from line_anchors.models import Annotation, AnnotationFile
from line_anchors.storage import (
    get_annotation_file_path,
    hash_content,
    read_annotation_file,
    read_source,
    sync_file,
    write_annotation_file,
)

ORIGINAL = "# Plan\n\nalpha\nbravo\nDecision: use sqlite\ncharlie\ndelta\n\nkilo\nlima\nRisk: no backups\nmike\nnovember\n"


@pytest.fixture
def engine():
    return AnchorEngine()


@pytest.fixture
def annotated_file(tmp_path: Path, engine) -> Path:
    """A source file with two annotations synced to its current content."""
    source = tmp_path / "plan.md"
    source.write_text(ORIGINAL)

    data = AnnotationFile(
        file="plan.md",
        file_hash=hash_content(ORIGINAL),
        annotations=[
            Annotation(anchor=engine.create_anchor(ORIGINAL, 5), author="alice", content="Why sqlite?"),
            Annotation(anchor=engine.create_anchor(ORIGINAL, 11), author="bob", content="Add backups"),
        ],
    )
    write_annotation_file(source, data)
    return source


class TestPaths:
    def test_sidecar_next_to_source(self, tmp_path):
        assert get_annotation_file_path(tmp_path / "plan.md") == tmp_path / "plan.md.annotations.json"


class TestReadSource:
    def test_reads_text(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("hello\n")
        assert read_source(path) == "hello\n"

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_source(tmp_path / "missing.txt")

    def test_binary_rejected(self, tmp_path):
        path = tmp_path / "image.bin"
        path.write_bytes(b"\x89PNG\x00\x00data")

        with pytest.raises(ValueError, match="Binary files not supported"):
            read_source(path)

    def test_invalid_utf8_rejected(self, tmp_path):
        path = tmp_path / "latin1.txt"
        path.write_bytes("café".encode("latin-1"))

        with pytest.raises(ValueError, match="UTF-8"):
            read_source(path)

    def test_directory_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="not a file"):
            read_source(tmp_path)


class TestAnnotationFileIO:
    def test_write_then_read(self, annotated_file):
        data = read_annotation_file(annotated_file)

        assert data.file == "plan.md"
        assert len(data.annotations) == 2
        assert data.annotations[0].content == "Why sqlite?"

    def test_deterministic_json(self, annotated_file):
        path = get_annotation_file_path(annotated_file)
        text = path.read_text()

        assert text.endswith("\n")
        assert json.loads(text)["file_hash"] == hash_content(ORIGINAL)
        # Single-line anchors omit end_line
        assert "end_line" not in json.loads(text)["annotations"][0]["anchor"]

    def test_no_temp_files_left(self, annotated_file):
        leftovers = [p for p in annotated_file.parent.iterdir() if p.name.startswith(".tmp_")]
        assert leftovers == []

    def test_missing_sidecar(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_annotation_file(tmp_path / "plan.md")

    def test_invalid_json(self, tmp_path):
        source = tmp_path / "plan.md"
        get_annotation_file_path(source).write_text("{broken")

        with pytest.raises(ValueError, match="Invalid JSON"):
            read_annotation_file(source)

    def test_schema_violation(self, tmp_path):
        source = tmp_path / "plan.md"
        get_annotation_file_path(source).write_text(json.dumps({"file": "plan.md"}))

        with pytest.raises(ValueError, match="schema validation"):
            read_annotation_file(source)


class TestSyncFile:
    def test_unchanged_source_skipped(self, annotated_file, engine):
        report = sync_file(annotated_file, engine)

        assert report.skipped is True
        assert report.total == 2
        assert report.orphaned_count == 0

    def test_shifted_source_updates_anchors(self, annotated_file, engine):
        annotated_file.write_text("> Draft, do not circulate\n> Owner: ops\n" + ORIGINAL)

        report = sync_file(annotated_file, engine)
        data = read_annotation_file(annotated_file)

        assert report.skipped is False
        assert report.synced_count == 2
        assert report.orphaned_count == 0
        assert [a.anchor.line for a in data.annotations] == [7, 13]
        assert data.file_hash == report.file_hash_after

    def test_orphaned_keep_stale_anchor(self, annotated_file, engine):
        # Drop the risk section and everything around it
        annotated_file.write_text("# Plan\n\nalpha\nbravo\nDecision: use sqlite\ncharlie\ndelta\n")
        original_second = read_annotation_file(annotated_file).annotations[1]

        report = sync_file(annotated_file, engine)
        data = read_annotation_file(annotated_file)

        assert report.synced_count == 1
        assert report.orphaned_count == 1
        assert report.orphaned_ids == [original_second.id]
        assert data.annotations[1].anchor == original_second.anchor
        assert data.annotations[0].anchor.line == 5

    def test_content_changed_counted(self, annotated_file, engine):
        annotated_file.write_text(ORIGINAL.replace("use sqlite", "use postgres"))

        report = sync_file(annotated_file, engine)

        assert report.synced_count == 2
        assert report.content_changed_count == 1

    def test_dry_run_does_not_write(self, annotated_file, engine):
        sidecar = get_annotation_file_path(annotated_file)
        before = sidecar.read_text()
        annotated_file.write_text("intro\n" + ORIGINAL)

        report = sync_file(annotated_file, engine, dry_run=True)

        assert report.synced_count == 2
        assert sidecar.read_text() == before

    def test_missing_sidecar(self, tmp_path, engine):
        source = tmp_path / "notes.txt"
        source.write_text("text\n")

        with pytest.raises(FileNotFoundError):
            sync_file(source, engine)

    def test_repeated_sync_still_reports_orphans(self, annotated_file, engine):
        annotated_file.write_text("# Plan\n\nalpha\nbravo\nDecision: use sqlite\ncharlie\ndelta\n")
        first = sync_file(annotated_file, engine)

        second = sync_file(annotated_file, engine)

        assert first.orphaned_count == 1
        assert second.orphaned_count == 1
        assert second.synced_count == 1
        assert second.orphaned_ids == first.orphaned_ids
        assert second.skipped is True

    def test_unchanged_sidecar_not_rewritten(self, annotated_file, engine):
        sidecar = get_annotation_file_path(annotated_file)
        sidecar.write_text(sidecar.read_text().replace("\n", "\n\n", 1))
        before = sidecar.read_text()

        report = sync_file(annotated_file, engine)

        assert report.skipped is True
        assert sidecar.read_text() == before

    def test_line_ending_conversion_is_not_a_change(self, annotated_file, engine):
        annotated_file.write_bytes(ORIGINAL.replace("\n", "\r\n").encode("utf-8"))

        report = sync_file(annotated_file, engine)

        assert report.file_hash_after == report.file_hash_before
        assert report.skipped is True
        assert report.synced_count == 2


class TestHashContent:
    def test_crlf_and_lf_hash_equal(self):
        assert hash_content("a\r\nb\r\n") == hash_content("a\nb\n")

    def test_content_edit_changes_hash(self):
        assert hash_content("a\nb\n") != hash_content("a\nc\n")
