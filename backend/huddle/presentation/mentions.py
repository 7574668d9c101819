"""
Mention highlighting.

A mention is ``@word`` preceded by whitespace; it is highlighted only when
the word is a known workspace username (case-insensitive).  Everything else
renders as plain text.
"""

import html
import re
from typing import NamedTuple

_MENTION_SPLIT_RE = re.compile(r"(\s@\w+)")
_MENTION_RE = re.compile(r"^@(\w+)$")


class Segment(NamedTuple):
    text: str
    is_mention: bool = False


def format_message_content(content: str, workspace_usernames) -> list[Segment]:
    """Split ``content`` into plain and mention segments."""
    if not content:
        return []
    known = {name.lower() for name in workspace_usernames}
    segments = []
    for part in _MENTION_SPLIT_RE.split(content):
        if not part:
            continue
        match = _MENTION_RE.match(part.strip())
        segments.append(Segment(part, bool(match) and match.group(1).lower() in known))
    return segments


def mentioned_usernames(content: str, workspace_usernames) -> list[str]:
    return [seg.text.strip()[1:].lower() for seg in format_message_content(content, workspace_usernames) if seg.is_mention]


def render_html(segments: list[Segment]) -> str:
    out = []
    for seg in segments:
        text = html.escape(seg.text)
        out.append(f'<span class="mention">{text}</span>' if seg.is_mention else text)
    return "".join(out)
