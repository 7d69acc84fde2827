import re

_PREFIXES = ("sentiment:", "urgency:")
_NON_ALNUM = re.compile(r"[^a-z0-9]")

def normalize_label(name: str) -> str:
    """Lower-case a tag or category, drop classifier prefixes, map other characters to ``_``.

    ``"Urgency:Critical"`` -> ``"critical"``, ``"Not Working"`` -> ``"not_working"``.
    """
    lowered = name.strip().lower()
    for prefix in _PREFIXES:
        if lowered.startswith(prefix):
            lowered = lowered[len(prefix):]
            break
    return _NON_ALNUM.sub("_", lowered)
