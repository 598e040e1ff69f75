"""Anchor creation and relocation after source file edits.

An anchor remembers the K lines around a commented span plus a fingerprint
of the span itself. Relocation searches an updated revision for the line
whose surrounding context best matches, trying strategies in sequence:
1. Fast path: the original line still has matching context
2. Local window: best match within ±search_radius lines
3. Full file: best match anywhere
4. Not found (the annotation is orphaned)

Position matching is driven only by context similarity; the fingerprint
decides ``content_changed`` and never affects the score.
"""

from collections.abc import Sequence

from line_anchors.config import DEFAULT_CONFIG, EngineConfig
from line_anchors.log import get_logger
from line_anchors.models import Anchor, PositionMatch, RelocationResult
from line_anchors.similarity import compute_content_hash, similarity


def split_lines(content: str) -> tuple[str, ...]:
    """Split file content on newlines, dropping a trailing carriage return per line."""
    return tuple(line[:-1] if line.endswith("\r") else line for line in content.split("\n"))


class SourceText:
    """One revision of a file, with memoized context windows.

    A bulk pass builds a single SourceText and shares it across every
    anchor it relocates, so each candidate line's windows and span
    fingerprints are computed at most once per pass.
    """

    def __init__(self, lines: Sequence[str], context_lines: int) -> None:
        self.lines = tuple(lines)
        self.context_lines = context_lines
        self._before: dict[int, str] = {}
        self._after: dict[int, str] = {}
        self._hashes: dict[tuple[int, int], str] = {}

    @classmethod
    def from_content(cls, content: str, context_lines: int) -> "SourceText":
        return cls(split_lines(content), context_lines)

    def __len__(self) -> int:
        return len(self.lines)

    def _line_or_blank(self, index: int) -> str:
        # index is 0-based; anything outside the file pads with ""
        return self.lines[index] if 0 <= index < len(self.lines) else ""

    def before_window(self, line: int) -> tuple[str, ...]:
        """The K lines preceding ``line``, oldest first."""
        return tuple(self._line_or_blank(i) for i in range(line - 1 - self.context_lines, line - 1))

    def after_window(self, end_line: int) -> tuple[str, ...]:
        """The K lines following ``end_line``, nearest first."""
        return tuple(self._line_or_blank(i) for i in range(end_line, end_line + self.context_lines))

    def context_before(self, line: int) -> str:
        if line not in self._before:
            self._before[line] = "\n".join(self.before_window(line))
        return self._before[line]

    def context_after(self, end_line: int) -> str:
        if end_line not in self._after:
            self._after[end_line] = "\n".join(self.after_window(end_line))
        return self._after[end_line]

    def span_text(self, line: int, end_line: int) -> str:
        return "\n".join(self.lines[max(line - 1, 0) : max(end_line, 0)])

    def span_hash(self, line: int, end_line: int) -> str:
        key = (line, end_line)
        if key not in self._hashes:
            self._hashes[key] = compute_content_hash(self.span_text(line, end_line))
        return self._hashes[key]


class AnchorEngine:
    """Creates anchors and relocates them using one EngineConfig.

    Example:
        >>> engine = AnchorEngine(EngineConfig(context_lines=3))
        >>> anchor = engine.create_anchor(old_text, 42)
        >>> result = engine.relocate(anchor, new_text)
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def source(self, content: "str | Sequence[str] | SourceText") -> SourceText:
        """Wrap raw content (or pre-split lines) for this engine's window size."""
        if isinstance(content, SourceText):
            if content.context_lines == self.config.context_lines:
                return content
            return SourceText(content.lines, self.config.context_lines)
        if isinstance(content, str):
            return SourceText.from_content(content, self.config.context_lines)
        return SourceText(content, self.config.context_lines)

    def create_anchor(
        self, content: "str | SourceText", line: int, end_line: int | None = None
    ) -> Anchor:
        """Capture context and a fingerprint for a line or line range.

        Args:
            content: Full file content (or an already split SourceText)
            line: First line of the span (1-indexed)
            end_line: Last line of the span (inclusive), None for a single line

        Returns:
            New Anchor for the span

        Raises:
            ValueError: If line < 1 or end_line < line
        """
        if end_line is not None and end_line < line:
            raise ValueError(f"end_line ({end_line}) must be >= line ({line})")

        source = self.source(content)
        last = end_line if end_line is not None else line
        return Anchor(
            line=line,
            end_line=end_line,
            context_before=source.context_before(line),
            context_after=source.context_after(last),
            content_hash=source.span_hash(line, last),
        )

    def score_at(
        self, lines: "Sequence[str] | SourceText", candidate_line: int, anchor: Anchor
    ) -> PositionMatch:
        """Score how well ``candidate_line`` matches the anchor's surrounding context.

        The candidate span keeps the anchor's original length. Before and
        after windows are weighted equally.
        """
        source = self.source(lines)
        if candidate_line < 1 or candidate_line > len(source):
            return PositionMatch(score=0.0, content_changed=True)

        candidate_end = candidate_line + anchor.span_length
        before_score = similarity(anchor.context_before, source.context_before(candidate_line))
        after_score = similarity(anchor.context_after, source.context_after(candidate_end))

        return PositionMatch(
            score=(before_score + after_score) / 2,
            content_changed=source.span_hash(candidate_line, candidate_end) != anchor.content_hash,
        )

    def relocate(self, anchor: Anchor, new_content: "str | SourceText") -> RelocationResult:
        """Find where an anchor moved to in updated file content.

        Args:
            anchor: The stored anchor
            new_content: Updated file content (or a SourceText shared across a pass)

        Returns:
            RelocationResult; ``found`` is False when no line reaches the threshold
        """
        source = self.source(new_content)
        threshold = self.config.similarity_threshold

        # Strategy 1: original position still matches
        original = self.score_at(source, anchor.line, anchor)
        if original.score >= threshold:
            return RelocationResult(
                found=True,
                new_line=anchor.line,
                new_end_line=anchor.end_line,
                confidence=original.score,
                content_changed=original.content_changed,
            )

        # Strategy 2: nearby lines
        radius = self.config.search_radius
        nearby = self._search_range(
            source, max(1, anchor.line - radius), min(len(source), anchor.line + radius), anchor
        )
        if nearby.found:
            return nearby

        # Strategy 3: whole file
        get_logger().debug("Falling back to full-file search", line=anchor.line, lines=len(source))
        return self._search_range(source, 1, len(source), anchor)

    def _search_range(
        self, source: SourceText, start_line: int, end_line: int, anchor: Anchor
    ) -> RelocationResult:
        """Return the best match in [start_line, end_line] if it reaches the threshold.

        Only a strictly higher score replaces the running best, so the lowest
        line wins ties.
        """
        best_line = 0
        best = PositionMatch(score=0.0, content_changed=True)

        for line in range(start_line, end_line + 1):
            match = self.score_at(source, line, anchor)
            if match.score > best.score:
                best_line = line
                best = match

        if best_line and best.score >= self.config.similarity_threshold:
            shift = best_line - anchor.line
            return RelocationResult(
                found=True,
                new_line=best_line,
                new_end_line=anchor.end_line + shift if anchor.end_line is not None else None,
                confidence=best.score,
                content_changed=best.content_changed,
            )

        return RelocationResult(found=False, confidence=best.score, content_changed=True)


def create_anchor(
    content: str, line: int, end_line: int | None = None, config: EngineConfig = DEFAULT_CONFIG
) -> Anchor:
    """Create an anchor using a one-off engine for ``config``."""
    return AnchorEngine(config).create_anchor(content, line, end_line)


def relocate_anchor(
    anchor: Anchor, new_content: str, config: EngineConfig = DEFAULT_CONFIG
) -> RelocationResult:
    """Relocate an anchor using a one-off engine for ``config``."""
    return AnchorEngine(config).relocate(anchor, new_content)
