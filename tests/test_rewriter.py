"""Tests for case-preserving rewriting."""

from pronounguard.pronouns import Role
from pronounguard.resolver import MismatchDecision
from pronounguard.rewriter import apply_corrections, preserve_case, span_is_whole_word


def decision(token: str, replacement: str, position: int, confidence: int = 80) -> MismatchDecision:
    return MismatchDecision(
        person_id="1",
        wrong_token=token,
        expected_label="they/them",
        replacement=replacement,
        position=position,
        confidence=confidence,
        role=Role.SUBJECT,
    )


class TestPreserveCase:
    def test_upper(self):
        assert preserve_case("HE", "she") == "SHE"

    def test_title(self):
        assert preserve_case("He", "she") == "She"

    def test_lower(self):
        assert preserve_case("he", "SHE") == "she"


class TestApplyCorrections:
    def test_multiple_edits_keep_offsets(self):
        text = "he and HE and He"
        result = apply_corrections(
            text,
            [decision("he", "they", 0), decision("he", "they", 7), decision("he", "they", 14)],
        )

        assert result.text == "they and THEY and They"
        assert [e.position for e in result.edits] == [0, 7, 14]
        assert [e.corrected for e in result.edits] == ["they", "THEY", "They"]
        assert result.changed is True

    def test_unordered_input(self):
        text = "him or his"
        result = apply_corrections(text, [decision("his", "their", 7), decision("him", "them", 0)])

        assert result.text == "them or their"
        assert [e.original for e in result.edits] == ["him", "his"]

    def test_partial_word_dropped(self):
        text = "the he"
        result = apply_corrections(text, [decision("he", "they", 1), decision("he", "they", 4)])

        assert result.text == "the they"
        assert [e.position for e in result.edits] == [4]

    def test_token_mismatch_dropped(self):
        result = apply_corrections("her", [decision("him", "them", 0)])

        assert result.text == "her"
        assert result.changed is False

    def test_out_of_range_dropped(self):
        result = apply_corrections("he", [decision("he", "they", 5)])
        assert result.text == "he"

    def test_first_decision_per_position_wins(self):
        result = apply_corrections("he left", [decision("he", "they", 0), decision("he", "she", 0)])
        assert result.text == "they left"

    def test_no_decisions(self):
        result = apply_corrections("he left", [])

        assert result.text == "he left"
        assert result.edits == []


def test_span_is_whole_word():
    assert span_is_whole_word("a he b", 2, 4) is True
    assert span_is_whole_word("ahe b", 1, 3) is False
    assert span_is_whole_word("he_", 0, 2) is False
    assert span_is_whole_word("he", 0, 3) is False
