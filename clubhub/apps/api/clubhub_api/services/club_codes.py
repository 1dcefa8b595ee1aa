"""Club slugs and invite codes.

Slugs appear in every club URL, so they are validated against a reserved
list of top-level path segments. Invite codes avoid characters that are
easy to misread (0/O, 1/I/L).
"""

import re
import secrets
from typing import Optional

from slugify import slugify

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50
MAX_SLUG_SUFFIX = 99

RESERVED_SLUGS = frozenset({
    "admin", "api", "auth", "login", "register", "logout", "signup", "signin",
    "join", "invite", "settings", "profile", "help", "support", "clubs",
    "dashboard", "users", "members", "system", "notifications", "static",
    "assets", "public", "favicon", "robots", "sitemap", "health", "status",
    "metrics", "docs", "privacy", "terms", "test", "demo", "example",
    "sample", "www", "mail", "email",
})

_SLUG_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

# German club names: transliterate instead of dropping the diacritic
_TRANSLITERATIONS = [
    ["ä", "ae"], ["ö", "oe"], ["ü", "ue"],
    ["Ä", "Ae"], ["Ö", "Oe"], ["Ü", "Ue"],
    ["ß", "ss"],
]

INVITE_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8

_INVITE_CODE_PATTERN = re.compile(rf"^[{INVITE_CODE_ALPHABET}]{{{INVITE_CODE_LENGTH}}}$")


def generate_slug(name: str) -> str:
    """'TSV Grün-Weiß 1908' -> 'tsv-gruen-weiss-1908'."""
    return slugify(
        name,
        replacements=_TRANSLITERATIONS,
        max_length=SLUG_MAX_LENGTH,
        word_boundary=True,
    )


def slug_error(slug: str) -> Optional[str]:
    """Reason the slug is unusable, or None if it is valid."""
    if not SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH:
        return f"Slug must be {SLUG_MIN_LENGTH}-{SLUG_MAX_LENGTH} characters long."
    if not _SLUG_PATTERN.match(slug) or "--" in slug:
        return (
            "Slug may only contain lowercase letters, numbers and single hyphens, "
            "and must start and end with a letter or number."
        )
    if slug in RESERVED_SLUGS:
        return "This slug is reserved."
    return None


def slug_candidates(base: str):
    """base, base-1, ... base-99, each within SLUG_MAX_LENGTH."""
    yield base
    for suffix in range(1, MAX_SLUG_SUFFIX + 1):
        tail = f"-{suffix}"
        yield base[: SLUG_MAX_LENGTH - len(tail)].rstrip("-") + tail


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def normalize_invite_code(code: str) -> str:
    """'hxnk-4p9m' / 'HXNK 4P9M' -> 'HXNK4P9M'."""
    return re.sub(r"[\s-]", "", code or "").upper()


def is_invite_code_valid(code: str) -> bool:
    return bool(_INVITE_CODE_PATTERN.match(normalize_invite_code(code)))


def format_invite_code(code: str) -> str:
    """Display form with a hyphen in the middle: HXNK-4P9M."""
    normalized = normalize_invite_code(code)
    if len(normalized) != INVITE_CODE_LENGTH:
        return normalized
    return f"{normalized[:4]}-{normalized[4:]}"
