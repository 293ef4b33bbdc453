"""Tests for reminder messages."""

from pronounguard.reminders import CorrectionTone, format_reminder


def test_gentle():
    assert format_reminder("42", "she/her") == (
        "Hey! Just a gentle reminder that <@42> uses **she/her** pronouns."
    )


def test_neutral():
    assert format_reminder("42", "they/them", CorrectionTone.NEUTRAL) == "<@42> uses **they/them** pronouns."


def test_educational():
    message = format_reminder("42", "xe/xem", CorrectionTone.EDUCATIONAL)
    assert message.startswith("Friendly correction: <@42> uses **xe/xem** pronouns.")


def test_custom():
    message = format_reminder("42", "he/him", CorrectionTone.CUSTOM, "Note: {user} goes by {pronouns}")
    assert message == "Note: <@42> goes by **he/him**"
