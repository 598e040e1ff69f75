"""Sidecar file I/O: reading and writing ``<file>.annotations.json``."""

import json
import os
import tempfile
from pathlib import Path

from line_anchors.anchors import AnchorEngine, split_lines
from line_anchors.log import get_logger
from line_anchors.models import AnnotationFile, SyncReport
from line_anchors.similarity import compute_content_hash
from line_anchors.sync import partition_relocations, relocate_annotations

ANNOTATION_FILE_SUFFIX = ".annotations.json"


def get_annotation_file_path(source_path: Path) -> Path:
    """Map a source file to its sidecar (e.g., plan.md -> plan.md.annotations.json)."""
    return source_path.with_name(source_path.name + ANNOTATION_FILE_SUFFIX)


def hash_content(content: str) -> str:
    """Fingerprint whole-file content for change detection.

    Lines are normalized the way the engine reads them, so a CRLF/LF
    conversion alone does not count as a change.
    """
    return compute_content_hash("\n".join(split_lines(content)))


def read_source(path: Path) -> str:
    """Read a text source file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file looks binary or is not valid UTF-8
    """
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    data = path.read_bytes()
    # Same heuristic as git: a NUL byte in the first 8 KiB means binary
    if b"\x00" in data[:8192]:
        raise ValueError(f"Binary files not supported: {path}")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Source file is not valid UTF-8: {path}") from e


def read_annotation_file(source_path: Path) -> AnnotationFile:
    """Read and validate the sidecar for a source file.

    Raises:
        FileNotFoundError: If the sidecar does not exist
        ValueError: If JSON is invalid or fails schema validation
    """
    path = get_annotation_file_path(source_path)
    if not path.exists():
        raise FileNotFoundError(f"Annotation file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in annotation file {path}: {e}") from e

    try:
        return AnnotationFile.model_validate(data)
    except Exception as e:
        raise ValueError(f"Annotation file failed schema validation: {e}") from e


def write_annotation_file(source_path: Path, data: AnnotationFile) -> Path:
    """Write the sidecar atomically with deterministic JSON.

    Writes to a temp file in the same directory and renames it over the
    target, so readers never see a partial file.

    Returns:
        Path of the written sidecar

    Raises:
        OSError: If the write or rename fails
    """
    path = get_annotation_file_path(source_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    json_str = json.dumps(
        data.model_dump(mode="json", exclude_none=True), indent=2, sort_keys=True, ensure_ascii=False
    )
    json_str += "\n"

    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json_str)
        os.replace(temp_name, path)
    except OSError as e:
        try:
            os.unlink(temp_name)
        except OSError:
            pass  # Temp file may already be gone
        raise OSError(f"Failed to write annotation file {path}: {e}") from e

    return path


def sync_file(source_path: Path, engine: AnchorEngine, *, dry_run: bool = False) -> SyncReport:
    """Relocate all annotations of a source file and persist the result.

    Synced annotations get their anchor overwritten; orphaned ones keep their
    stale anchor. Every pass relocates, so annotations orphaned by an earlier
    sync are reported again. The sidecar is only rewritten when the source
    hash or an anchor changed.

    Args:
        source_path: Annotated source file
        engine: Engine configured for this file
        dry_run: Compute the report without writing the sidecar

    Returns:
        SyncReport summarizing the pass

    Raises:
        FileNotFoundError: If the source or sidecar does not exist
        ValueError: If the source is binary or the sidecar is invalid
        OSError: If writing the sidecar fails
    """
    logger = get_logger()
    content = read_source(source_path)
    annotation_file = read_annotation_file(source_path)

    hash_before = annotation_file.file_hash
    hash_after = hash_content(content)
    total = len(annotation_file.annotations)

    results = relocate_annotations(annotation_file.annotations, content, engine)
    partition = partition_relocations(results)

    # partition_relocations preserves input order within each list
    synced = iter(partition.synced)
    updated = [
        next(synced) if r.relocation.found and r.updated_anchor is not None else r.annotation
        for r in results
    ]
    unchanged = hash_before == hash_after and updated == annotation_file.annotations
    annotation_file.annotations = updated
    annotation_file.file_hash = hash_after

    if unchanged:
        logger.debug("Source and anchors unchanged, sidecar left as is", file=str(source_path))
    elif not dry_run:
        written = write_annotation_file(source_path, annotation_file)
        logger.debug("Wrote annotation file", path=str(written))

    return SyncReport(
        file=annotation_file.file,
        total=total,
        synced_count=len(partition.synced),
        orphaned_count=len(partition.orphaned),
        content_changed_count=sum(
            1 for r in results if r.relocation.found and r.relocation.content_changed
        ),
        orphaned_ids=[a.id for a in partition.orphaned],
        skipped=unchanged,
        file_hash_before=hash_before,
        file_hash_after=hash_after,
    )
