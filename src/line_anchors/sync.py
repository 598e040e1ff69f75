"""Bulk relocation of annotations against an updated file."""

from collections.abc import Sequence

from line_anchors.anchors import AnchorEngine, SourceText
from line_anchors.log import get_logger
from line_anchors.models import Annotation, RelocatedAnnotation, SyncResult


def relocate_annotations(
    annotations: Sequence[Annotation],
    new_content: "str | SourceText",
    engine: AnchorEngine | None = None,
) -> list[RelocatedAnnotation]:
    """Relocate every annotation's anchor in one pass over the new content.

    The content is split once and its context windows are shared by all
    annotations. A successfully relocated annotation gets a freshly built
    anchor at its new position; the input annotations are not modified.

    Args:
        annotations: Annotations to relocate (order is preserved)
        new_content: Updated file content
        engine: Engine to use (defaults to one with the default config)

    Returns:
        One RelocatedAnnotation per input annotation
    """
    engine = engine or AnchorEngine()
    source = engine.source(new_content)

    results = []
    for annotation in annotations:
        relocation = engine.relocate(annotation.anchor, source)
        updated_anchor = None
        if relocation.found and relocation.new_line is not None:
            updated_anchor = engine.create_anchor(source, relocation.new_line, relocation.new_end_line)
        results.append(
            RelocatedAnnotation(
                annotation=annotation, relocation=relocation, updated_anchor=updated_anchor
            )
        )
    return results


def partition_relocations(results: Sequence[RelocatedAnnotation]) -> SyncResult:
    """Split bulk relocation output into synced and orphaned annotations.

    Synced annotations are copies carrying the rebuilt anchor. Orphaned
    annotations are the original objects, stale anchor included.
    """
    logger = get_logger()
    synced: list[Annotation] = []
    orphaned: list[Annotation] = []

    for result in results:
        if result.relocation.found and result.updated_anchor is not None:
            synced.append(result.annotation.model_copy(update={"anchor": result.updated_anchor}))
        else:
            logger.debug(
                "Annotation orphaned",
                id=result.annotation.id,
                line=result.annotation.anchor.line,
                confidence=round(result.relocation.confidence, 3),
            )
            orphaned.append(result.annotation)

    logger.debug("Sync pass complete", synced=len(synced), orphaned=len(orphaned))
    return SyncResult(synced=synced, orphaned=orphaned)


def sync_annotations(
    annotations: Sequence[Annotation],
    new_content: "str | SourceText",
    engine: AnchorEngine | None = None,
) -> SyncResult:
    """Relocate annotations and partition them into synced vs. orphaned.

    Every input annotation lands in exactly one of the two lists.
    """
    return partition_relocations(relocate_annotations(annotations, new_content, engine))
