import re
from typing import Optional

# <@U024BE7LH> or <@U024BE7LH|alice>
MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+(?:\|[^>]*)?>")

# 【8†file.pdf】, 【8:0†file.pdf】, 【20:0-3†People & Talent_v099.pdf】
CITATION_PATTERN = re.compile(r"【\d+(?::\d+(?:-\d+)?)?†[^】]+】")


def strip_mentions(text: str) -> str:
    """Remove Slack user mention tokens."""
    return MENTION_PATTERN.sub("", text).strip()


def strip_citations(text: str) -> str:
    """Remove file-search citation markers emitted by the assistant."""
    # Removing a nested marker can expose an outer one, so repeat until stable.
    previous = None
    while previous != text:
        previous = text
        text = CITATION_PATTERN.sub("", text)
    return text.strip()


def normalize_inbound_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return strip_mentions(text.strip())
