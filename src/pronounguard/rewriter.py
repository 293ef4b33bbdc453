"""Case-preserving, position-safe pronoun replacement."""

from dataclasses import dataclass
from typing import Iterable

from .resolver import MismatchDecision


@dataclass(frozen=True)
class AppliedEdit:
    """A replacement that was applied to the original text."""

    original: str
    corrected: str
    position: int


@dataclass(frozen=True)
class RewriteResult:
    """Rewritten text plus the edits, in ascending position order."""

    text: str
    edits: list[AppliedEdit]

    @property
    def changed(self) -> bool:
        return bool(self.edits)


def preserve_case(original: str, replacement: str) -> str:
    """Render ``replacement`` in the casing style of ``original``."""
    if original.isupper():
        return replacement.upper()
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:].lower()
    return replacement.lower()


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def span_is_whole_word(text: str, start: int, end: int) -> bool:
    """True if ``text[start:end]`` is bounded by non-word characters or text edges."""
    if start < 0 or end > len(text) or start >= end:
        return False
    if start > 0 and _is_word_char(text[start - 1]):
        return False
    if end < len(text) and _is_word_char(text[end]):
        return False
    return True


def apply_corrections(original: str, decisions: Iterable[MismatchDecision]) -> RewriteResult:
    """Apply decisions to the original text.

    Decisions are applied from the highest position down so earlier offsets
    stay valid. A decision whose span no longer holds its token as a whole
    word in the original is dropped. Only the first decision per position
    is used.
    """
    by_position: dict[int, MismatchDecision] = {}
    for decision in decisions:
        by_position.setdefault(decision.position, decision)

    text = original
    edits: list[AppliedEdit] = []
    last_start = len(original) + 1

    for position in sorted(by_position, reverse=True):
        decision = by_position[position]
        end = position + len(decision.wrong_token)

        # Overlaps an edit already applied further right.
        if end > last_start:
            continue
        if not span_is_whole_word(original, position, end):
            continue
        matched = original[position:end]
        if matched.lower() != decision.wrong_token.lower():
            continue

        corrected = preserve_case(matched, decision.replacement)
        text = text[:position] + corrected + text[end:]
        edits.append(AppliedEdit(original=matched, corrected=corrected, position=position))
        last_start = position

    edits.reverse()
    return RewriteResult(text=text, edits=edits)
