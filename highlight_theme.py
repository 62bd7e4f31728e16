# highlight_theme.py
from __future__ import annotations

from typing import Dict, Optional


# Token colors for the target sentence. Update here to change them app-wide.
WORD_MATCHED = "#4ade80"    # read correctly
WORD_UNMATCHED = "#e5484d"  # in the struggle set
WORD_UNREAD = "#e6eaf0"     # no attempt scored yet
PUNCTUATION = "#9fb0c0"

MATCHED_MARK = " ✓"
UNMATCHED_MARK = " ✗"


def palette() -> Dict[str, str]:
    return {
        "matched": WORD_MATCHED,
        "unmatched": WORD_UNMATCHED,
        "unread": WORD_UNREAD,
        "text": PUNCTUATION,
    }


def _chip(label: str, color: str) -> str:
    return f'<span style="color:{color}; font-weight:600;">{label}</span>'


def legend_html_for_sentence() -> str:
    p = palette()
    return "Legend: " + " ".join(
        [
            _chip("correct" + MATCHED_MARK, p["matched"]),
            _chip("try again" + UNMATCHED_MARK, p["unmatched"]),
            _chip("not read yet", p["unread"]),
        ]
    )


def token_html(display: str, status: str, href: Optional[str] = None) -> str:
    """
    One rendered token; status as produced by annotate_tokens(). Word
    tokens given an href become links so a click can read them aloud.
    """
    color = palette().get(status, WORD_UNREAD)
    text = (
        display.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    )
    weight = ""
    if status == "matched":
        text += MATCHED_MARK
    elif status == "unmatched":
        text += UNMATCHED_MARK
        weight = " font-weight:700;"
    style = f"color:{color};{weight}"
    if href is not None:
        return f'<a href="{href}" style="{style} text-decoration:none;">{text}</a>'
    return f'<span style="{style}">{text}</span>'
