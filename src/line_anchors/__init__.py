"""Content anchors that keep line comments in place as files are edited.

This package contains:
- AnchorEngine for creating anchors and relocating them in new revisions
- Bulk relocation and sync of annotation collections
- Sidecar storage and a small CLI around the engine
"""

from .anchors import AnchorEngine, SourceText, create_anchor, relocate_anchor
from .config import DEFAULT_CONFIG, EngineConfig, EngineSettings, load_config
from .models import Anchor, Annotation, RelocatedAnnotation, RelocationResult, SyncResult
from .similarity import compute_content_hash, similarity
from .sync import relocate_annotations, sync_annotations

__all__ = [
    "AnchorEngine",
    "SourceText",
    "create_anchor",
    "relocate_anchor",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "EngineSettings",
    "load_config",
    "Anchor",
    "Annotation",
    "RelocatedAnnotation",
    "RelocationResult",
    "SyncResult",
    "compute_content_hash",
    "similarity",
    "relocate_annotations",
    "sync_annotations",
]
