"""Context scanner: finds pronoun tokens and ties them to mentioned people."""

import re
from dataclasses import dataclass, field

from .pronouns import Role, all_forms, role_of

BASE_CONFIDENCE = 50
CONTEXT_RADIUS = 50

CLAUSE_START_BONUS = 10
VERB_FOLLOW_BONUS = 20
POSITIVE_BONUS = 15
NEGATIVE_PENALTY = 25

REFERENTIAL_VERBS = (
    "is", "was", "will", "can", "should", "would",
    "has", "had", "goes", "went", "says", "said",
)

_FORMS = sorted(all_forms(), key=len, reverse=True)
PRONOUN_PATTERN = re.compile(r"\b(" + "|".join(_FORMS) + r")\b", re.IGNORECASE)
VERB_FOLLOW_PATTERN = re.compile(
    r"\s+(" + "|".join(REFERENTIAL_VERBS) + r")\b", re.IGNORECASE
)

POSITIVE_CONTEXT_PATTERNS = [
    re.compile(r"\b(person|individual|user|member|friend|colleague)\b", re.IGNORECASE),
    re.compile(r"\b(said|told|mentioned|thinks|believes|likes|wants)\b", re.IGNORECASE),
    re.compile(r"\bwhen (he|she|they|xe|ze|fae|ey)\b", re.IGNORECASE),
]

NEGATIVE_CONTEXT_PATTERNS = [
    re.compile(r"\b(movie|song|book|game|show|video|meme)\b", re.IGNORECASE),
    re.compile(r"\b(quote|lyrics|reference|from)\b", re.IGNORECASE),
    re.compile(r"\bhttps?://", re.IGNORECASE),
    re.compile(r"\b(character|fictional|story)\b", re.IGNORECASE),
]

FENCED_CODE_PATTERN = re.compile(r"```[\s\S]*?```")
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")
BLOCK_QUOTE_PATTERN = re.compile(r"^[ \t]*>.*$", re.MULTILINE)

MENTION_PATTERN = re.compile(r"<@!?([\w.-]+)>|(?<![\w@])@([\w.-]*\w)")

CLAUSE_TERMINATORS = ".!?;:"


@dataclass(frozen=True)
class ProximityWindow:
    """Characters before and after a mention marker that count as nearby."""

    name: str
    before: int
    after: int

    def contains(self, marker: int, position: int) -> bool:
        return marker - self.before <= position <= marker + self.after


MENTION_PROXIMITY = ProximityWindow("proximity", before=100, after=300)
MENTION_CORRELATION = ProximityWindow("correlation", before=200, after=200)

WINDOWS = {w.name: w for w in (MENTION_PROXIMITY, MENTION_CORRELATION)}


def window_from_name(name: str) -> ProximityWindow:
    """Look up a window policy by name."""
    try:
        return WINDOWS[name]
    except KeyError:
        raise ValueError(
            f"Unknown window '{name}'. Use one of: {', '.join(sorted(WINDOWS))}"
        ) from None


@dataclass
class ScanOptions:
    """Options for a scan."""

    strip_ignorable: bool = True
    context_aware: bool = True
    window: ProximityWindow = MENTION_PROXIMITY


@dataclass(frozen=True)
class PronounOccurrence:
    """A pronoun token found in the text.

    Attributes:
        token: Lowercase form used for comparison.
        original: The token as written, for case-preserving rewrites.
        role: Grammatical role from the fixed token lookup.
        position: Character offset. Identical in the original and the
            masked text because masking never changes length.
        confidence: 0-100 likelihood the token refers to a person.
    """

    token: str
    original: str
    role: Role
    position: int
    confidence: int

    @property
    def end(self) -> int:
        return self.position + len(self.original)


@dataclass
class PersonContext:
    """Pronouns found near one person's mention markers."""

    person_id: str
    markers: list[int] = field(default_factory=list)
    occurrences: list[PronounOccurrence] = field(default_factory=list)

    @property
    def tokens(self) -> list[str]:
        """Unique lowercase tokens, in order of first appearance."""
        seen: list[str] = []
        for occurrence in self.occurrences:
            if occurrence.token not in seen:
                seen.append(occurrence.token)
        return seen


@dataclass
class ScanResult:
    """Output of a scan."""

    text: str
    occurrences: list[PronounOccurrence]
    nearby: dict[str, PersonContext]

    def context_for(self, person_id: str) -> PersonContext:
        return self.nearby.get(person_id) or PersonContext(person_id=person_id)


def _mask(match: re.Match[str]) -> str:
    return "".join("\n" if ch == "\n" else " " for ch in match.group(0))


def strip_ignorable(text: str) -> str:
    """Blank out fenced code, inline code and block-quote lines.

    Masked regions are replaced by spaces of the same length (newlines are
    kept), so every offset in the result is valid in the original text.
    """
    masked = FENCED_CODE_PATTERN.sub(_mask, text)
    masked = INLINE_CODE_PATTERN.sub(_mask, masked)
    return BLOCK_QUOTE_PATTERN.sub(_mask, masked)


def mention_pattern(person_id: str) -> re.Pattern[str]:
    """Pattern matching every marker that references one person."""
    escaped = re.escape(person_id)
    return re.compile(rf"<@!?{escaped}>|(?<![\w@])@{escaped}(?![\w.-]*\w)")


def extract_mentions(text: str) -> list[str]:
    """Unique mentioned ids in order of first appearance."""
    ids: list[str] = []
    for match in MENTION_PATTERN.finditer(text):
        person_id = match.group(1) or match.group(2)
        if person_id and person_id not in ids:
            ids.append(person_id)
    return ids


def _at_clause_start(text: str, position: int) -> bool:
    preceding = text[:position]
    stripped = preceding.rstrip()
    if not stripped:
        return True
    if "\n" in preceding[len(stripped):]:
        return True
    return stripped[-1] in CLAUSE_TERMINATORS


def score_confidence(text: str, start: int, end: int, context_aware: bool = True) -> int:
    """Estimate how likely the token at ``text[start:end]`` is referential."""
    if not context_aware:
        return BASE_CONFIDENCE

    confidence = BASE_CONFIDENCE
    context = text[max(0, start - CONTEXT_RADIUS):min(len(text), end + CONTEXT_RADIUS)]

    for pattern in POSITIVE_CONTEXT_PATTERNS:
        if pattern.search(context):
            confidence += POSITIVE_BONUS

    for pattern in NEGATIVE_CONTEXT_PATTERNS:
        if pattern.search(context):
            confidence -= NEGATIVE_PENALTY

    if _at_clause_start(text, start):
        confidence += CLAUSE_START_BONUS

    if VERB_FOLLOW_PATTERN.match(text, end):
        confidence += VERB_FOLLOW_BONUS

    return max(0, min(100, confidence))


def find_pronouns(text: str, context_aware: bool = True) -> list[PronounOccurrence]:
    """Find every whole-word pronoun outside mention markers."""
    marker_spans = [m.span() for m in MENTION_PATTERN.finditer(text)]

    occurrences = []
    for match in PRONOUN_PATTERN.finditer(text):
        start, end = match.span()
        if any(s <= start < e for s, e in marker_spans):
            continue
        word = match.group(0)
        occurrences.append(
            PronounOccurrence(
                token=word.lower(),
                original=word,
                role=role_of(word),
                position=start,
                confidence=score_confidence(text, start, end, context_aware),
            )
        )
    return occurrences


def scan(
    text: str,
    person_ids: list[str] | None = None,
    options: ScanOptions | None = None,
) -> ScanResult:
    """Scan text for pronouns and correlate them with mentioned people.

    Args:
        text: Raw message text.
        person_ids: People to correlate. Defaults to every mention in the text.
        options: Scan options.

    Returns:
        ScanResult over the (possibly masked) text.
    """
    options = options or ScanOptions()
    working = strip_ignorable(text) if options.strip_ignorable else text

    occurrences = find_pronouns(working, options.context_aware)

    if person_ids is None:
        person_ids = extract_mentions(working)

    nearby: dict[str, PersonContext] = {}
    for person_id in person_ids:
        context = PersonContext(person_id=person_id)
        context.markers = [m.start() for m in mention_pattern(person_id).finditer(working)]
        context.occurrences = [
            occurrence
            for occurrence in occurrences
            if any(options.window.contains(marker, occurrence.position) for marker in context.markers)
        ]
        nearby[person_id] = context

    return ScanResult(text=working, occurrences=occurrences, nearby=nearby)
