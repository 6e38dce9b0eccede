"""Classify exported ``system.profile`` entries by operator compatibility.

The profiler logs one document per operation.  For every entry whose
``op`` is ``"command"`` (aggregations, finds issued as commands, etc.)
this module walks the whole document tree and looks at each object key
that starts with ``$``:

::

    entry (op == "command")
        |
        +-- walk every dict key / list element, depth first
        |       |
        |       +-- key in SUPPORTED_KEYWORDS      -> supported[key] += 1
        |       +-- key in NOT_SUPPORTED_KEYWORDS  -> not_supported[key] += 1
        |       |                                    triggers += key (once)
        |       +-- anything else                  -> ignored
        |
        +-- triggers empty?  yes -> supported_commands
                             no  -> not_supported_commands (+ triggers)

Entries with any other ``op`` (insert, update, query, getmore, ...) are
skipped entirely.

Result shape returned by :func:`classify`::

    {
        "supported": {"$match": 4, ...},
        "not_supported": {"$lookup": 2, ...},
        "supported_commands": [entry, ...],
        "not_supported_commands": [{"entry": entry, "keywords": ["$lookup"]}, ...],
    }
"""

import json
from pathlib import Path

from profile_keywords import keyword_class


class ProfileFileError(Exception):
    """Raised when a profile export cannot be read or is not a JSON array."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Profile file '{self.path}': {reason}")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_profile(path) -> list[dict]:
    """Load a profile export written by ``export_profiling_data``.

    Args:
        path: Path to a JSON array of profile entries.  Extended JSON
            wrappers such as ``{"$date": ...}`` are kept as plain dicts so
            operator keys like ``$regex`` survive untouched.

    Returns:
        List of entry dicts, in file order.

    Raises:
        ProfileFileError: If the file is missing, unparsable, or not an array.
    """
    path = Path(path)
    if not path.is_file():
        raise ProfileFileError(path, "file does not exist")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ProfileFileError(path, f"invalid JSON ({exc})") from exc
    if not isinstance(data, list):
        raise ProfileFileError(path, "expected a JSON array of profile entries")
    return data


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _traverse(node, supported: dict[str, int], not_supported: dict[str, int],
              triggers: list[str]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            kind = keyword_class(key) if isinstance(key, str) else None
            if kind == "supported":
                supported[key] = supported.get(key, 0) + 1
            elif kind == "not_supported":
                not_supported[key] = not_supported.get(key, 0) + 1
                if key not in triggers:
                    triggers.append(key)
            _traverse(value, supported, not_supported, triggers)
    elif isinstance(node, list):
        for item in node:
            _traverse(item, supported, not_supported, triggers)


def classify(entries) -> dict:
    """Count operator keywords and split command entries by compatibility.

    Args:
        entries: Sequence of profile entry dicts.

    Returns:
        Classification dict (see module docstring).  Entry order within each
        list matches the input order.
    """
    supported: dict[str, int] = {}
    not_supported: dict[str, int] = {}
    supported_commands: list[dict] = []
    not_supported_commands: list[dict] = []

    for entry in entries:
        if not isinstance(entry, dict) or entry.get("op") != "command":
            continue
        triggers: list[str] = []
        _traverse(entry, supported, not_supported, triggers)
        if triggers:
            not_supported_commands.append({"entry": entry, "keywords": triggers})
        else:
            supported_commands.append(entry)

    return {
        "supported": supported,
        "not_supported": not_supported,
        "supported_commands": supported_commands,
        "not_supported_commands": not_supported_commands,
    }


def summarize_keywords(result: dict) -> dict:
    """Total the keyword counts and compute the compatibility percentage.

    The percentage is over keyword *occurrences*, not distinct operators or
    pipelines.  It is 0 when nothing was counted.

    Args:
        result: Output of :func:`classify`.

    Returns:
        Dict with ``total_keywords``, ``total_supported``,
        ``total_not_supported`` and ``supported_percent``.
    """
    total_supported = sum(result.get("supported", {}).values())
    total_not_supported = sum(result.get("not_supported", {}).values())
    total = total_supported + total_not_supported
    percent = (total_supported / total) * 100 if total > 0 else 0
    return {
        "total_keywords": total,
        "total_supported": total_supported,
        "total_not_supported": total_not_supported,
        "supported_percent": percent,
    }
