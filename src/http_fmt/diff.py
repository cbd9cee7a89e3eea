"""Character-level diff between current and canonical content."""

import difflib

import click


def render_diff(current: str, canonical: str) -> str:
    """Render ``current`` -> ``canonical`` with insertions on green and deletions on red."""
    matcher = difflib.SequenceMatcher(None, current, canonical, autojunk=False)
    parts = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            parts.append(current[i1:i2])
            continue
        if tag in ("delete", "replace"):
            parts.append(click.style(current[i1:i2], bg="red"))
        if tag in ("insert", "replace"):
            parts.append(click.style(canonical[j1:j2], bg="green"))
    return "".join(parts)
