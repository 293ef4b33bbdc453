"""Reminder messages a host can post after a correction fires."""

from enum import Enum

DEFAULT_CUSTOM_MESSAGE = "Just a heads up: {user} uses {pronouns} pronouns!"


class CorrectionTone(Enum):
    """Tone of the reminder message."""

    GENTLE = "gentle"
    NEUTRAL = "neutral"
    EDUCATIONAL = "educational"
    CUSTOM = "custom"


def format_reminder(
    person_id: str,
    label: str,
    tone: CorrectionTone = CorrectionTone.GENTLE,
    custom_message: str = DEFAULT_CUSTOM_MESSAGE,
) -> str:
    """Build a reminder that ``person_id`` uses ``label``.

    The custom template accepts ``{user}`` and ``{pronouns}`` placeholders.
    """
    user = f"<@{person_id}>"
    pronouns = f"**{label}**"

    if tone is CorrectionTone.NEUTRAL:
        return f"{user} uses {pronouns} pronouns."
    if tone is CorrectionTone.EDUCATIONAL:
        return (
            f"Friendly correction: {user} uses {pronouns} pronouns. "
            "Using the right pronouns shows respect and keeps the space inclusive."
        )
    if tone is CorrectionTone.CUSTOM:
        return custom_message.replace("{user}", user).replace("{pronouns}", pronouns)
    return f"Hey! Just a gentle reminder that {user} uses {pronouns} pronouns."
