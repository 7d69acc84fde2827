import logging
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from triage.core.base import new_id, utcnow
from triage.modules.teams.models import Team, User
from triage.modules.teams.schemas import TeamOut, UserCreate, UserOut
from triage.platform.failover import translate_store_errors
from triage.platform.memory_store import MemoryStore

log = logging.getLogger(__name__)

AVAILABLE_ROLES = ("agent", "manager")

class TeamRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @translate_store_errors
    async def find_all(self) -> Sequence[TeamOut]:
        async with self.session_factory() as session:
            res = await session.execute(select(Team).order_by(Team.name.asc()))
            return [TeamOut.model_validate(t) for t in res.scalars().all()]

    @translate_store_errors
    async def find_by_id(self, team_id: str) -> TeamOut | None:
        async with self.session_factory() as session:
            obj = await session.get(Team, team_id)
            return TeamOut.model_validate(obj) if obj else None

    @translate_store_errors
    async def find_by_name(self, name: str) -> TeamOut | None:
        needle = name.lower()
        async with self.session_factory() as session:
            res = await session.execute(select(Team).where(func.lower(Team.name) == needle))
            obj = res.scalars().first()
            if obj is None:
                res = await session.execute(
                    select(Team).where(func.lower(Team.name).contains(needle)).order_by(Team.name.asc())
                )
                obj = res.scalars().first()
            return TeamOut.model_validate(obj) if obj else None

    @translate_store_errors
    async def find_available_users(self, team_id: str) -> Sequence[UserOut]:
        q = select(User).where(
            User.team_id == team_id,
            User.role.in_(AVAILABLE_ROLES),
        ).order_by(User.created_at.asc())
        async with self.session_factory() as session:
            res = await session.execute(q)
            return [UserOut.model_validate(u) for u in res.scalars().all()]

    @translate_store_errors
    async def create(self, name: str, description: str | None = None) -> TeamOut:
        async with self.session_factory() as session:
            obj = Team(name=name, description=description)
            session.add(obj)
            try:
                await session.commit()
                return TeamOut.model_validate(obj)
            except IntegrityError:
                # another worker created it first
                await session.rollback()
                res = await session.execute(select(Team).where(func.lower(Team.name) == name.lower()))
                existing = res.scalars().first()
                if existing is None:
                    raise
                log.info("Team %r already created concurrently; reusing %s", name, existing.id)
                return TeamOut.model_validate(existing)

    @translate_store_errors
    async def create_user(self, payload: UserCreate) -> UserOut:
        async with self.session_factory() as session:
            obj = User(**payload.model_dump())
            session.add(obj)
            await session.commit()
            return UserOut.model_validate(obj)

    @translate_store_errors
    async def find_user_by_email(self, email: str) -> UserOut | None:
        async with self.session_factory() as session:
            res = await session.execute(select(User).where(User.email == email))
            obj = res.scalars().first()
            return UserOut.model_validate(obj) if obj else None

class InMemoryTeamRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def find_all(self) -> Sequence[TeamOut]:
        rows = sorted(self.store.teams.values(), key=lambda r: r["name"])
        return [TeamOut.model_validate(r) for r in rows]

    async def find_by_id(self, team_id: str) -> TeamOut | None:
        row = self.store.teams.get(team_id)
        return TeamOut.model_validate(row) if row else None

    async def find_by_name(self, name: str) -> TeamOut | None:
        needle = name.lower()
        rows = sorted(self.store.teams.values(), key=lambda r: r["name"])
        row = next((r for r in rows if r["name"].lower() == needle), None)
        if row is None:
            row = next((r for r in rows if needle in r["name"].lower()), None)
        return TeamOut.model_validate(row) if row else None

    async def find_available_users(self, team_id: str) -> Sequence[UserOut]:
        rows = [u for u in self.store.users.values() if u["team_id"] == team_id and u["role"] in AVAILABLE_ROLES]
        rows.sort(key=lambda r: r["created_at"])
        return [UserOut.model_validate(u) for u in rows]

    async def create(self, name: str, description: str | None = None) -> TeamOut:
        existing = next((r for r in self.store.teams.values() if r["name"].lower() == name.lower()), None)
        if existing is not None:
            return TeamOut.model_validate(existing)
        now = utcnow()
        row = {"id": new_id(), "name": name, "description": description, "created_at": now, "updated_at": now}
        self.store.teams[row["id"]] = row
        return TeamOut.model_validate(row)

    async def create_user(self, payload: UserCreate) -> UserOut:
        now = utcnow()
        row = {**payload.model_dump(), "id": new_id(), "created_at": now, "updated_at": now}
        self.store.users[row["id"]] = row
        return UserOut.model_validate(row)

    async def find_user_by_email(self, email: str) -> UserOut | None:
        row = next((u for u in self.store.users.values() if u["email"] == email), None)
        return UserOut.model_validate(row) if row else None
