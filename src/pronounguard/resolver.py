"""Mismatch resolver: decides which pronouns near a person are wrong.

The result of resolving one person is a ``CorrectionOutcome``, a closed set
of variants. Callers match on the variant rather than inspecting flags:

    match outcome:
        case Corrections(decisions=decisions):
            ...
        case AllCorrect() | NoPronouns() | NotApplicable():
            ...
        case BelowThreshold() | UnparseableLabel():
            ...
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Union

from .pronouns import Role, RoleTable, accepted_forms, expand_label, is_sentinel
from .scanner import PersonContext, PronounOccurrence

MISMATCH_CEILING = 80
MISMATCH_LIFT = 20
IMPERSONAL_PENALTY = 15
IMPERSONAL_TOKENS = frozenset({"it", "its"})

DEFAULT_CONFIDENCE_FLOOR = 75


class Aggregation(Enum):
    """How per-occurrence confidences combine into a person's confidence."""

    MAX = "max"
    MEAN = "mean"
    MIN = "min"

    def combine(self, values: list[int]) -> float:
        if not values:
            return 0.0
        if self is Aggregation.MAX:
            return float(max(values))
        if self is Aggregation.MIN:
            return float(min(values))
        return sum(values) / len(values)


@dataclass(frozen=True)
class MismatchDecision:
    """One pronoun that should be replaced."""

    person_id: str
    wrong_token: str
    expected_label: str
    replacement: str
    position: int
    confidence: int
    role: Role


@dataclass(frozen=True)
class NotApplicable:
    """The person's label is unspecified or accepts any pronouns."""

    person_id: str
    expected_label: str
    confidence: int = 0
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def reason(self) -> str:
        return f"{self.expected_label}: pronouns are unspecified or any pronouns are accepted"


@dataclass(frozen=True)
class UnparseableLabel:
    """The expected label could not be expanded into a role table."""

    person_id: str
    expected_label: str
    confidence: int = 0
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def reason(self) -> str:
        return f"unparseable label: {self.expected_label}"


@dataclass(frozen=True)
class NoPronouns:
    """No pronouns were found near the person's mentions."""

    person_id: str
    expected_label: str
    confidence: int = 0
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def reason(self) -> str:
        return "no pronouns found"


@dataclass(frozen=True)
class AllCorrect:
    """Every nearby pronoun matches the expected label."""

    person_id: str
    expected_label: str
    confidence: int = 100
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def reason(self) -> str:
        return "all pronouns correct"


@dataclass(frozen=True)
class BelowThreshold:
    """Mismatches were found but confidence did not reach the floor."""

    person_id: str
    expected_label: str
    confidence: int
    candidates: tuple[MismatchDecision, ...] = ()
    floor: int = DEFAULT_CONFIDENCE_FLOOR
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def reason(self) -> str:
        wrong = ", ".join(sorted({c.wrong_token for c in self.candidates}))
        return f"possible mismatch ({wrong}) below confidence floor {self.floor}: {self.confidence}"


@dataclass(frozen=True)
class Corrections:
    """Mismatches that should be corrected."""

    person_id: str
    expected_label: str
    confidence: int
    decisions: tuple[MismatchDecision, ...] = ()

    @property
    def wrong_tokens(self) -> list[str]:
        tokens: list[str] = []
        for decision in self.decisions:
            if decision.wrong_token not in tokens:
                tokens.append(decision.wrong_token)
        return tokens

    @property
    def reason(self) -> str:
        return (
            f"found incorrect pronouns: {', '.join(self.wrong_tokens)}. "
            f"expected: {self.expected_label}"
        )


CorrectionOutcome = Union[
    NotApplicable,
    UnparseableLabel,
    NoPronouns,
    AllCorrect,
    BelowThreshold,
    Corrections,
]


def replacement_for(role: Role, table: RoleTable) -> str | None:
    """First-listed form of the token's role, or None if the role is undefined."""
    forms = table.get(role)
    if not forms:
        return None
    return forms[0]


class MismatchResolver:
    """Cross-references nearby pronouns with a person's expected label."""

    def __init__(
        self,
        confidence_floor: int = DEFAULT_CONFIDENCE_FLOOR,
        aggregation: Aggregation = Aggregation.MAX,
        context_aware: bool = True,
    ) -> None:
        if not 0 <= confidence_floor <= 100:
            raise ValueError("confidence_floor must be between 0 and 100")
        self.confidence_floor = confidence_floor
        self.aggregation = aggregation
        self.context_aware = context_aware

    def person_confidence(self, candidates: list[PronounOccurrence]) -> int:
        """Combine candidate confidences into a single person-level score.

        Without context awareness every mismatch gets the flat ceiling score.
        """
        if not self.context_aware:
            return MISMATCH_CEILING
        aggregate = self.aggregation.combine([c.confidence for c in candidates])
        confidence = min(MISMATCH_CEILING, aggregate + MISMATCH_LIFT)
        if any(c.token in IMPERSONAL_TOKENS for c in candidates):
            confidence -= IMPERSONAL_PENALTY
        return max(0, min(100, round(confidence)))

    def resolve(
        self,
        context: PersonContext | Iterable[PronounOccurrence],
        expected_label: str,
        person_id: str | None = None,
    ) -> CorrectionOutcome:
        """Decide which occurrences near a person are mismatches.

        Args:
            context: The person's scan context, or their nearby occurrences.
            expected_label: The person's declared label.
            person_id: Required when ``context`` is a plain iterable.

        Returns:
            A CorrectionOutcome variant.
        """
        if isinstance(context, PersonContext):
            occurrences = list(context.occurrences)
            person_id = person_id or context.person_id
        else:
            occurrences = list(context)
        if person_id is None:
            raise ValueError("person_id is required")

        if is_sentinel(expected_label):
            return NotApplicable(person_id=person_id, expected_label=expected_label)

        table = expand_label(expected_label)
        if table is None:
            return UnparseableLabel(person_id=person_id, expected_label=expected_label)

        if not occurrences:
            return NoPronouns(person_id=person_id, expected_label=expected_label)

        accepted = accepted_forms(table)
        candidates: list[tuple[PronounOccurrence, str]] = []
        for occurrence in occurrences:
            if occurrence.token in accepted:
                continue
            replacement = replacement_for(occurrence.role, table)
            if replacement is None:
                continue
            candidates.append((occurrence, replacement))

        if not candidates:
            return AllCorrect(person_id=person_id, expected_label=expected_label)

        confidence = self.person_confidence([occurrence for occurrence, _ in candidates])
        decisions = tuple(
            MismatchDecision(
                person_id=person_id,
                wrong_token=occurrence.token,
                expected_label=expected_label,
                replacement=replacement,
                position=occurrence.position,
                confidence=confidence,
                role=occurrence.role,
            )
            for occurrence, replacement in candidates
        )

        if confidence < self.confidence_floor:
            return BelowThreshold(
                person_id=person_id,
                expected_label=expected_label,
                confidence=confidence,
                candidates=decisions,
                floor=self.confidence_floor,
            )

        return Corrections(
            person_id=person_id,
            expected_label=expected_label,
            confidence=confidence,
            decisions=decisions,
        )
