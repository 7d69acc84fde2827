"""Team and agent resolution for a query.

A team name is chosen from the query's tags, then the classifier category,
then the channel. The named team is looked up (and created on first use), and
the first available agent of that team is picked. Store failures never
escape: they produce an AssignmentResult without ids and an explanatory reason.
"""
import asyncio
import logging
from typing import Sequence
from triage.core.config import settings
from sqlalchemy.exc import SQLAlchemyError
from triage.core.errors import TeamCreationFailure, TriageError
from triage.modules.queries.schemas import ClassifierInsights, Tag
from triage.modules.teams.schemas import TeamOut, UserOut
from triage.modules.triage.normalize import normalize_label
from triage.modules.triage.schemas import AssignmentResult

log = logging.getLogger(__name__)

TAG_TO_TEAM: dict[str, str] = {
    "billing": "Billing Team",
    "payment": "Billing Team",
    "invoice": "Billing Team",
    "refund": "Billing Team",
    "subscription": "Billing Team",
    "charge": "Billing Team",
    "technical": "Technical Team",
    "bug": "Technical Team",
    "error": "Technical Team",
    "issue": "Technical Team",
    "problem": "Technical Team",
    "broken": "Technical Team",
    "not_working": "Technical Team",
    "complaint": "Support Team",
    "feedback": "Support Team",
    "question": "Support Team",
    "request": "Support Team",
    "help": "Support Team",
    "assistance": "Support Team",
    "account": "Support Team",
    "login": "Support Team",
    "password": "Support Team",
    "access": "Support Team",
    "security": "Support Team",
    "verification": "Support Team",
    "sales": "Product Team",
    "purchase": "Product Team",
    "upgrade": "Product Team",
    "plan": "Product Team",
    "feature": "Product Team",
    "product": "Product Team",
    "operations": "Operations Team",
    "process": "Operations Team",
    "workflow": "Operations Team",
    "escalated": "Escalations Team",
    "urgent": "Escalations Team",
    "critical": "Escalations Team",
    "priority": "Escalations Team",
}

CHANNEL_TO_TEAM: dict[str, str] = {
    "email": "Support Team",
    "social": "Support Team",
    "chat": "Support Team",
    "community": "Support Team",
}

DEFAULT_TEAM = "Support Team"

CANONICAL_TEAMS: dict[str, str] = {
    "Support Team": "General customer support team",
    "Billing Team": "Billing and payment inquiries",
    "Technical Team": "Technical support and bug reports",
    "Operations Team": "Operations and process management",
    "Product Team": "Product inquiries and feature requests",
    "Escalations Team": "Escalated issues and complex problems",
}

# substring of a free-text name -> canonical team
_FUZZY_CANONICAL: list[tuple[str, str]] = [
    ("support", "Support Team"),
    ("billing", "Billing Team"),
    ("technical", "Technical Team"),
    ("operations", "Operations Team"),
    ("product", "Product Team"),
    ("escalat", "Escalations Team"),
]

def canonical_team_name(name: str) -> str:
    if name in CANONICAL_TEAMS:
        return name
    lowered = name.lower()
    for needle, canonical in _FUZZY_CANONICAL:
        if needle in lowered:
            return canonical
    return f"{name[:1].upper()}{name[1:].lower()} Team"

def team_for_tags(tags: Sequence[Tag], min_confidence: float) -> tuple[str, Tag] | None:
    for tag in tags:
        team = TAG_TO_TEAM.get(normalize_label(tag.name))
        if team and tag.confidence >= min_confidence:
            return team, tag
    return None

def pick_user(users: Sequence[UserOut]) -> UserOut | None:
    return next((u for u in users if u.role == "agent"), None) or (users[0] if users else None)

class TeamResolver:
    def __init__(self, teams, min_tag_confidence: float | None = None):
        self.teams = teams
        self.min_tag_confidence = settings.TEAM_TAG_MIN_CONFIDENCE if min_tag_confidence is None else min_tag_confidence
        # team creation goes through one coordinator per process
        self._create_lock = asyncio.Lock()

    def choose_team_name(self, tags: Sequence[Tag], channel: str, insights: ClassifierInsights | None) -> tuple[str, str]:
        match = team_for_tags(tags, self.min_tag_confidence)
        if match:
            team, tag = match
            return team, f"Matched by tag: {tag.name}"
        if insights and insights.category:
            team = TAG_TO_TEAM.get(normalize_label(insights.category))
            if team:
                return team, f"Matched by AI category: {insights.category}"
        return CHANNEL_TO_TEAM.get(channel, DEFAULT_TEAM), f"Default assignment by channel: {channel}"

    async def find_team(self, name: str) -> TeamOut | None:
        team = await self.teams.find_by_name(name)
        if team:
            return team
        needle = name.lower()
        all_teams = await self.teams.find_all()
        return (
            next((t for t in all_teams if t.name.lower() == needle), None)
            or next((t for t in all_teams if needle in t.name.lower()), None)
        )

    async def ensure_team(self, name: str) -> TeamOut:
        team = await self.find_team(name)
        if team:
            return team
        async with self._create_lock:
            # re-check: a concurrent caller may have created it while we waited
            team = await self.find_team(name)
            if team:
                return team
            final_name = canonical_team_name(name)
            log.info("Team %r not found, creating %r", name, final_name)
            try:
                team = await self.teams.create(final_name, CANONICAL_TEAMS.get(final_name, f"{final_name} team"))
            except Exception as e:
                raise TeamCreationFailure(name, e) from e
            log.info("Created team %s (%s)", team.name, team.id)
            return team

    async def assign_team(self, tags: Sequence[Tag], channel: str, message: str, insights: ClassifierInsights | None = None) -> AssignmentResult:
        log.debug("Determining team for channel=%s tags=%s", channel, [t.name for t in tags])
        team_name, reason = self.choose_team_name(tags, channel, insights)

        try:
            team = await self.ensure_team(team_name)
            users = await self.teams.find_available_users(team.id)
        except TeamCreationFailure as e:
            log.error("%s (%s)", e, e.cause)
            return AssignmentResult(reason=str(e))
        except (TriageError, SQLAlchemyError) as e:
            log.error("Team lookup for %r failed: %s", team_name, e)
            return AssignmentResult(reason=f"Failed to find or create team: {team_name}")

        user = pick_user(users)
        if user is None:
            log.warning("No available users found in team %s", team.name)
        return AssignmentResult(
            team_id=team.id,
            team_name=team.name,
            user_id=user.id if user else None,
            user_name=user.name if user else None,
            reason=reason,
        )
