"""Markup-to-plain-text sanitizer for host rich text.

Job descriptions and thoughts coming out of the host carry game UI markup:
``<sprite name=icon_wood>`` icon references, ``<b>``/``</b>`` bold spans,
and colour/size tags.  Webhook cards only understand Markdown, so:

  - icon references become a readable label (``Wood``, ``Gold``, ...)
  - bold spans become the ``**`` emphasis marker
  - every other tag is dropped, content and all
  - action keywords ("Gathering:", leading "Idle ") are emphasised
  - runs of spaces collapse to one, leading/trailing whitespace is trimmed

The tag scan is a single left-to-right pass with no nesting: a ``<`` opens
a span that ends at the next ``>``, the next ``<``, or end of text.
Unterminated spans are dropped.

``sanitize`` is idempotent on tag-free input.
"""

from __future__ import annotations

import re

EMPHASIS = "**"
ELLIPSIS = "..."

ACTION_KEYWORDS = (
    "Returning", "Fetching", "Planting", "Searching",
    "Gathering", "Patrolling", "Building", "Harvesting",
    "Hunting", "Working", "Collecting", "Waiting",
    "Traveling", "Chopping", "Cutting", "Repairing",
    "Idle", "Constructing", "Defending",
)

# Checked in order; first substring hit wins
ICON_LABELS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("apple",), "Apple"),
    (("charcoal",), "Charcoal"),
    (("wheat", "grain"), "Wheat"),
    (("fish",), "Fish"),
    (("stone",), "Stone"),
    (("wood",), "Wood"),
    (("iron",), "Iron"),
    (("wool",), "Wool"),
    (("meat",), "Meat"),
    (("gold", "money"), "Gold"),
)

_SPRITE_PREFIX = "sprite name="
_ICON_PREFIX = "icon_"

# '<' + body, terminated by '>', by the next '<' (left in place), or end of text
_TAG_RE = re.compile(r"<([^<>]*)(>|(?=<)|$)")
_SPACES_RE = re.compile(r" {2,}")

_KEYWORD_ALT = "|".join(ACTION_KEYWORDS)
_ACTION_RE = re.compile(
    rf"^(?P<lead>{_KEYWORD_ALT})(?= )"
    rf"|(?<!\*\*)\b(?P<label>{_KEYWORD_ALT}):"
)


def icon_label(icon_name: str) -> str:
    """Readable label for a sprite icon name."""
    lowered = icon_name.lower()
    for needles, label in ICON_LABELS:
        if any(n in lowered for n in needles):
            return label
    slug = icon_name.strip().strip("\"'")
    if slug.lower().startswith(_ICON_PREFIX):
        slug = slug[len(_ICON_PREFIX):]
    return slug.replace("_", " ").replace("=", "").strip()


def _replace_tag(match: re.Match) -> str:
    if match.group(2) != ">":
        return ""
    body = match.group(1).strip()
    if body.startswith(_SPRITE_PREFIX):
        return icon_label(body[len(_SPRITE_PREFIX):])
    if body.lower() in ("b", "/b"):
        return EMPHASIS
    return ""


def _emphasize(match: re.Match) -> str:
    lead = match.group("lead")
    if lead is not None:
        return f"{EMPHASIS}{lead}{EMPHASIS}"
    return f"{EMPHASIS}{match.group('label')}:{EMPHASIS}"


def strip_markup(text: str) -> str:
    """Drop tags and substitute icons/bold, without keyword emphasis."""
    return _TAG_RE.sub(_replace_tag, text)


def sanitize(text: str | None) -> str:
    """Convert host rich text to plain Markdown-safe text."""
    if not text:
        return ""
    plain = strip_markup(text)
    plain = _SPACES_RE.sub(" ", plain).strip()
    return _ACTION_RE.sub(_emphasize, plain)


def truncate(text: str, max_length: int) -> str:
    """Clip ``text`` to ``max_length`` characters with a trailing ellipsis.

    Text that already fits is returned unchanged.  Otherwise the result is
    the first ``max_length - 3`` characters plus ``...``, exactly
    ``max_length`` long.
    """
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS
