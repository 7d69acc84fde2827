import logging
from triage.modules.teams.schemas import TeamOut, UserCreate
from triage.modules.triage.team_resolver import CANONICAL_TEAMS

log = logging.getLogger(__name__)

DEFAULT_USERS = [
    {"email": "agent1@example.com", "name": "Agent One", "role": "agent", "team": "Support Team"},
    {"email": "agent2@example.com", "name": "Agent Two", "role": "agent", "team": "Billing Team"},
    {"email": "agent3@example.com", "name": "Agent Three", "role": "agent", "team": "Technical Team"},
    {"email": "agent4@example.com", "name": "Agent Four", "role": "agent", "team": "Operations Team"},
    {"email": "agent5@example.com", "name": "Agent Five", "role": "agent", "team": "Product Team"},
    {"email": "agent6@example.com", "name": "Agent Six", "role": "agent", "team": "Escalations Team"},
    {"email": "manager1@example.com", "name": "Manager One", "role": "manager", "team": "Support Team"},
    {"email": "manager2@example.com", "name": "Manager Two", "role": "manager", "team": "Technical Team"},
]

async def ensure_default_teams(teams, with_users: bool = False) -> list[TeamOut]:
    """Create the canonical teams (and optionally demo agents) if missing. Safe to call repeatedly."""
    ensured: dict[str, TeamOut] = {}
    for name, description in CANONICAL_TEAMS.items():
        team = await teams.find_by_name(name)
        if team is None or team.name.lower() != name.lower():
            team = await teams.create(name, description)
            log.info("Created team %s (%s)", team.name, team.id)
        ensured[name] = team

    if with_users:
        for entry in DEFAULT_USERS:
            if await teams.find_user_by_email(entry["email"]):
                continue
            user = await teams.create_user(UserCreate(
                name=entry["name"], email=entry["email"], role=entry["role"], team_id=ensured[entry["team"]].id,
            ))
            log.info("Created user %s in %s", user.name, entry["team"])
    return list(ensured.values())
