"""Error taxonomy of the triage core.

NotFound is surfaced to callers. StoreUnavailable never leaves the repository
layer: the failover wrapper absorbs it and switches to the in-memory store.
ClassifierFailure propagates so the job queue retries the classify job.
TeamCreationFailure is turned into an empty AssignmentResult by the resolver.
"""

class TriageError(Exception):
    """Base class for errors raised by the triage core."""

class NotFound(TriageError):
    def __init__(self, kind: str, ident: str):
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident

class StoreUnavailable(TriageError):
    pass

class ClassifierFailure(TriageError):
    pass

class TeamCreationFailure(TriageError):
    def __init__(self, team_name: str, cause: Exception | None = None):
        super().__init__(f"Failed to find or create team: {team_name}")
        self.team_name = team_name
        self.cause = cause
