import logging
from triage.modules.queries.schemas import Priority, QueryStatus
from triage.modules.triage.schemas import StatusTransition

log = logging.getLogger(__name__)

STATUS_WORKFLOW: dict[QueryStatus, frozenset[QueryStatus]] = {
    "new": frozenset({"in_progress", "escalated", "resolved", "closed"}),
    "in_progress": frozenset({"escalated", "resolved", "closed"}),
    "escalated": frozenset({"in_progress", "resolved", "closed"}),
    "resolved": frozenset({"closed", "in_progress"}),
    "closed": frozenset(),
}

def can_transition(from_status: QueryStatus, to_status: QueryStatus) -> bool:
    return to_status in STATUS_WORKFLOW.get(from_status, frozenset())

def determine_initial_status(priority: Priority, is_assigned: bool) -> QueryStatus:
    """Status for a query with no prior status to transition from."""
    if priority in ("urgent", "high"):
        return "escalated"
    if is_assigned:
        return "in_progress"
    return "new"

def get_status_transition(
    current: QueryStatus,
    priority: Priority,
    is_assigned: bool,
    is_resolved: bool = False,
) -> StatusTransition | None:
    """Automatic transition for an existing query; first matching rule wins.

    An urgent priority escalates from any status other than ``escalated``,
    closed and resolved queries included.
    """
    if is_resolved and current not in ("resolved", "closed"):
        return StatusTransition(from_status=current, to="resolved", reason="Query marked as resolved", auto=False)
    if priority == "urgent" and current != "escalated":
        return StatusTransition(from_status=current, to="escalated", reason="Priority upgraded to urgent", auto=True)
    if priority == "high" and current == "new":
        return StatusTransition(from_status=current, to="escalated", reason="High priority query requires escalation", auto=True)
    if is_assigned and current == "new":
        return StatusTransition(from_status=current, to="in_progress", reason="Query assigned to team/user", auto=True)
    return None

def should_auto_escalate(priority: Priority, current: QueryStatus) -> bool:
    if priority == "urgent" and current != "escalated":
        return True
    return priority == "high" and current == "new"

def log_status_transition(query_id: str, transition: StatusTransition, **metadata) -> None:
    log.info(
        "Status transition query=%s %s -> %s (%s, auto=%s) %s",
        query_id, transition.from_status, transition.to, transition.reason, transition.auto, metadata or "",
    )
