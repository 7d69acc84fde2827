from dataclasses import dataclass, field
from typing import Any

@dataclass
class MemoryStore:
    """Process-local tables backing the in-memory repositories.

    Rows are plain dicts keyed by id; dict insertion order doubles as the
    creation order when timestamps tie.
    """
    queries: dict[str, dict[str, Any]] = field(default_factory=dict)
    teams: dict[str, dict[str, Any]] = field(default_factory=dict)
    users: dict[str, dict[str, Any]] = field(default_factory=dict)
    activities: list[dict[str, Any]] = field(default_factory=list)
