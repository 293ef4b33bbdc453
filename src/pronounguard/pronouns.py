"""Pronoun sets, grammatical roles and label normalization.

Every component that needs to know what a pronoun "is" reads from the
tables in this module: the scanner builds its token pattern from them, the
resolver expands labels into role tables, and the directory normalizes raw
source replies through ``normalize_label``.
"""

import re
from enum import Enum

UNSPECIFIED = "unspecified"
ANY_LABELS = frozenset({"any", "any pronouns"})


class Role(Enum):
    """Grammatical role of a pronoun."""

    SUBJECT = "subject"
    OBJECT = "object"
    POSSESSIVE_DETERMINER = "possessive_determiner"
    POSSESSIVE_INDEPENDENT = "possessive_independent"
    REFLEXIVE = "reflexive"


RoleTable = dict[Role, list[str]]


def _set(
    subject: str,
    obj: str,
    determiner: str,
    independent: str,
    *reflexive: str,
) -> RoleTable:
    return {
        Role.SUBJECT: [subject],
        Role.OBJECT: [obj],
        Role.POSSESSIVE_DETERMINER: [determiner],
        Role.POSSESSIVE_INDEPENDENT: [independent],
        Role.REFLEXIVE: list(reflexive),
    }


PRONOUN_SETS: dict[str, RoleTable] = {
    "he/him": _set("he", "him", "his", "his", "himself"),
    "she/her": _set("she", "her", "her", "hers", "herself"),
    "they/them": _set("they", "them", "their", "theirs", "themselves", "themself"),
    "it/its": _set("it", "it", "its", "its", "itself"),
    "xe/xem": _set("xe", "xem", "xyr", "xyrs", "xemself"),
    "ze/zir": _set("ze", "zir", "zir", "zirs", "zirself"),
    "fae/faer": _set("fae", "faer", "faer", "faers", "faerself"),
    "ey/em": _set("ey", "em", "eir", "eirs", "emself"),
}

# Ambiguous forms (her, his, it, its, zir, faer) resolve to a single role here.
TOKEN_ROLES: dict[str, Role] = {
    "he": Role.SUBJECT,
    "she": Role.SUBJECT,
    "they": Role.SUBJECT,
    "it": Role.SUBJECT,
    "xe": Role.SUBJECT,
    "ze": Role.SUBJECT,
    "fae": Role.SUBJECT,
    "ey": Role.SUBJECT,
    "him": Role.OBJECT,
    "her": Role.OBJECT,
    "them": Role.OBJECT,
    "xem": Role.OBJECT,
    "zir": Role.OBJECT,
    "faer": Role.OBJECT,
    "em": Role.OBJECT,
    "his": Role.POSSESSIVE_DETERMINER,
    "their": Role.POSSESSIVE_DETERMINER,
    "its": Role.POSSESSIVE_DETERMINER,
    "xyr": Role.POSSESSIVE_DETERMINER,
    "eir": Role.POSSESSIVE_DETERMINER,
    "hers": Role.POSSESSIVE_INDEPENDENT,
    "theirs": Role.POSSESSIVE_INDEPENDENT,
    "xyrs": Role.POSSESSIVE_INDEPENDENT,
    "zirs": Role.POSSESSIVE_INDEPENDENT,
    "faers": Role.POSSESSIVE_INDEPENDENT,
    "eirs": Role.POSSESSIVE_INDEPENDENT,
    "himself": Role.REFLEXIVE,
    "herself": Role.REFLEXIVE,
    "themselves": Role.REFLEXIVE,
    "themself": Role.REFLEXIVE,
    "itself": Role.REFLEXIVE,
    "xemself": Role.REFLEXIVE,
    "zirself": Role.REFLEXIVE,
    "faerself": Role.REFLEXIVE,
    "emself": Role.REFLEXIVE,
}

SUBJECT_FORMS = frozenset(
    form for table in PRONOUN_SETS.values() for form in table[Role.SUBJECT]
)

# PronounDB directory codes
LABEL_CODES: dict[str, str] = {
    "hh": "he/him",
    "hi": "he/it",
    "hs": "he/she",
    "ht": "he/they",
    "ih": "it/he",
    "ii": "it/its",
    "is": "it/she",
    "it": "it/they",
    "shh": "she/he",
    "sh": "she/her",
    "si": "she/it",
    "st": "she/they",
    "th": "they/he",
    "ti": "they/it",
    "ts": "they/she",
    "tt": "they/them",
    "any": "any pronouns",
    "other": "other pronouns",
    "ask": "ask for pronouns",
    "avoid": "avoid pronouns",
}

_LABEL_SPLIT = re.compile(r"[/,\s]+")


def all_forms() -> set[str]:
    """Return every known pronoun form across all sets."""
    return {
        form
        for table in PRONOUN_SETS.values()
        for forms in table.values()
        for form in forms
    }


def role_of(token: str) -> Role:
    """Look up the role of a token, falling back to subject."""
    return TOKEN_ROLES.get(token.lower(), Role.SUBJECT)


def normalize_label(raw: str | None) -> str:
    """Normalize a raw directory reply into a readable label.

    Known directory codes map to ``x/y`` labels; anything else passes
    through unchanged. Empty replies become ``unspecified``.
    """
    if raw is None:
        return UNSPECIFIED
    value = raw.strip()
    if not value or value.lower() == UNSPECIFIED:
        return UNSPECIFIED
    return LABEL_CODES.get(value.lower(), value)


def is_sentinel(label: str) -> bool:
    """True for labels that never produce corrections."""
    normalized = label.strip().lower()
    return normalized == UNSPECIFIED or normalized in ANY_LABELS


def _find_set(part: str) -> RoleTable | None:
    for table in PRONOUN_SETS.values():
        if any(part in forms for forms in table.values()):
            return table
    return None


def expand_label(label: str) -> RoleTable | None:
    """Expand a label into its role table.

    An exact key match wins. Otherwise the label is split on ``/``, ``,`` or
    whitespace and each part must appear in some known set; the matching
    sets are merged in part order, so the first part supplies the preferred
    replacement forms. Returns None when the label cannot be parsed.
    """
    normalized = label.strip().lower()
    if normalized in PRONOUN_SETS:
        return {role: list(forms) for role, forms in PRONOUN_SETS[normalized].items()}

    parts = [p for p in _LABEL_SPLIT.split(normalized) if p]
    if not parts:
        return None

    tables: list[RoleTable] = []
    for part in parts:
        table = _find_set(part)
        if table is None:
            return None
        if table not in tables:
            tables.append(table)

    merged: RoleTable = {role: [] for role in Role}
    for table in tables:
        for role, forms in table.items():
            for form in forms:
                if form not in merged[role]:
                    merged[role].append(form)
    return merged


def accepted_forms(table: RoleTable) -> set[str]:
    """Every form a role table accepts, regardless of role."""
    return {form for forms in table.values() for form in forms}
