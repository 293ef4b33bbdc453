"""Tests for the mismatch resolver."""

import pytest

from pronounguard.pronouns import Role, expand_label, role_of
from pronounguard.resolver import (
    Aggregation,
    AllCorrect,
    BelowThreshold,
    Corrections,
    MismatchResolver,
    NoPronouns,
    NotApplicable,
    UnparseableLabel,
    replacement_for,
)
from pronounguard.rewriter import apply_corrections
from pronounguard.scanner import PronounOccurrence, scan


def occ(token: str, confidence: int, position: int = 0) -> PronounOccurrence:
    return PronounOccurrence(
        token=token.lower(),
        original=token,
        role=role_of(token),
        position=position,
        confidence=confidence,
    )


@pytest.fixture
def resolver() -> MismatchResolver:
    return MismatchResolver()


class TestScenarios:
    def test_subject_mismatch(self, resolver: MismatchResolver):
        text = "He is really good at coding @Alice"
        outcome = resolver.resolve(scan(text).context_for("Alice"), "she/her")

        assert isinstance(outcome, Corrections)
        assert outcome.confidence >= 80
        assert len(outcome.decisions) == 1

        decision = outcome.decisions[0]
        assert decision.person_id == "Alice"
        assert decision.wrong_token == "he"
        assert decision.replacement == "she"
        assert decision.role is Role.SUBJECT
        assert decision.position == 0

        assert apply_corrections(text, outcome.decisions).text == "She is really good at coding @Alice"

    def test_object_and_possessive_mismatch(self, resolver: MismatchResolver):
        text = "Him and his team did great work @Alex"
        outcome = resolver.resolve(scan(text).context_for("Alex"), "they/them")

        assert isinstance(outcome, Corrections)
        assert [(d.wrong_token, d.replacement, d.role) for d in outcome.decisions] == [
            ("him", "them", Role.OBJECT),
            ("his", "their", Role.POSSESSIVE_DETERMINER),
        ]
        assert outcome.wrong_tokens == ["him", "his"]
        assert "expected: they/them" in outcome.reason

        assert apply_corrections(text, outcome.decisions).text == "Them and their team did great work @Alex"

    def test_unspecified_never_corrects(self, resolver: MismatchResolver):
        text = "He said she lost his keys @Sam"
        outcome = resolver.resolve(scan(text).context_for("Sam"), "unspecified")

        assert isinstance(outcome, NotApplicable)
        assert outcome.decisions == ()

    def test_fenced_code_never_corrects(self, resolver: MismatchResolver):
        text = "```\nHe is great\n```\n@Alice"
        outcome = resolver.resolve(scan(text).context_for("Alice"), "she/her")

        assert isinstance(outcome, NoPronouns)
        assert outcome.decisions == ()


class TestOutcomes:
    def test_any_pronouns(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("he", 90)], "any pronouns", person_id="1")
        assert isinstance(outcome, NotApplicable)

    def test_unparseable_label(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("he", 90)], "bun/bunself", person_id="1")

        assert isinstance(outcome, UnparseableLabel)
        assert outcome.reason == "unparseable label: bun/bunself"

    def test_no_pronouns(self, resolver: MismatchResolver):
        outcome = resolver.resolve([], "she/her", person_id="1")

        assert isinstance(outcome, NoPronouns)
        assert outcome.reason == "no pronouns found"

    def test_all_correct(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("She", 80), occ("her", 50, 10)], "she/her", person_id="1")

        assert isinstance(outcome, AllCorrect)
        assert outcome.confidence == 100
        assert outcome.reason == "all pronouns correct"

    def test_mixed_label_accepts_either_set(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("they", 80), occ("him", 80, 10)], "he/they", person_id="1")
        assert isinstance(outcome, AllCorrect)

    def test_below_threshold(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("he", 40)], "she/her", person_id="1")

        assert isinstance(outcome, BelowThreshold)
        assert outcome.confidence == 60
        assert outcome.floor == 75
        assert len(outcome.candidates) == 1
        assert outcome.decisions == ()
        assert "below confidence floor 75" in outcome.reason

    def test_confidence_ceiling(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("he", 100)], "she/her", person_id="1")
        assert outcome.confidence == 80

    def test_impersonal_penalty(self):
        outcome = MismatchResolver().resolve([occ("it", 80)], "she/her", person_id="1")
        assert isinstance(outcome, BelowThreshold)
        assert outcome.confidence == 65

        outcome = MismatchResolver(confidence_floor=60).resolve([occ("it", 80)], "she/her", person_id="1")
        assert isinstance(outcome, Corrections)
        assert outcome.decisions[0].replacement == "she"

    def test_decisions_share_person_confidence(self, resolver: MismatchResolver):
        outcome = resolver.resolve([occ("Him", 60), occ("his", 50, 8)], "they/them", person_id="1")

        assert isinstance(outcome, Corrections)
        assert {d.confidence for d in outcome.decisions} == {80}

    def test_context_person_id_used(self, resolver: MismatchResolver):
        outcome = resolver.resolve(scan("He is here @bob").context_for("bob"), "she/her")
        assert outcome.person_id == "bob"

    def test_iterable_requires_person_id(self, resolver: MismatchResolver):
        with pytest.raises(ValueError, match="person_id"):
            resolver.resolve([occ("he", 80)], "she/her")


class TestAggregation:
    @pytest.fixture
    def candidates(self) -> list[PronounOccurrence]:
        return [occ("he", 80), occ("him", 20, 10)]

    def test_max(self, candidates):
        assert MismatchResolver(aggregation=Aggregation.MAX).person_confidence(candidates) == 80

    def test_mean(self, candidates):
        assert MismatchResolver(aggregation=Aggregation.MEAN).person_confidence(candidates) == 70

    def test_min(self, candidates):
        assert MismatchResolver(aggregation=Aggregation.MIN).person_confidence(candidates) == 40

    def test_combine_empty(self):
        assert Aggregation.MEAN.combine([]) == 0.0


def test_context_unaware_uses_flat_confidence():
    resolver = MismatchResolver(context_aware=False)

    assert resolver.person_confidence([occ("he", 50)]) == 80
    assert resolver.person_confidence([occ("it", 10)]) == 80

    outcome = resolver.resolve([occ("he", 50)], "she/her", person_id="1")
    assert isinstance(outcome, Corrections)


def test_replacement_for():
    table = expand_label("xe/xem")
    assert replacement_for(Role.OBJECT, table) == "xem"
    assert replacement_for(Role.REFLEXIVE, {Role.SUBJECT: ["xe"]}) is None


def test_invalid_floor():
    with pytest.raises(ValueError, match="between 0 and 100"):
        MismatchResolver(confidence_floor=101)
