from __future__ import annotations

import re

_SEPARATOR_TAIL = re.compile(r"[-–>]{1,2}\s*(.+)$")


def derive_headsign_from_label(label: str | None) -> str | None:
    """Best-effort destination from labels such as `12-Lagiewnicka` or `5 > Retkinia`."""

    if not label:
        return None
    text = str(label).strip()
    if not text:
        return None
    match = _SEPARATOR_TAIL.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None
