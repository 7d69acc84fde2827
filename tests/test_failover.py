import asyncio
import logging

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from triage.core.errors import StoreUnavailable
from triage.modules.teams.repository import InMemoryTeamRepository
from triage.platform.failover import FailoverRepository, StoreCircuit, translate_store_errors
from triage.platform.memory_store import MemoryStore


class DownTeams:
    def __init__(self):
        self.calls = 0

    async def find_all(self):
        self.calls += 1
        raise StoreUnavailable("connection refused")

    async def create(self, name, description=None):
        self.calls += 1
        raise StoreUnavailable("connection refused")


class UpTeams:
    async def find_all(self):
        return ["from-primary"]


@pytest.mark.asyncio
async def test_primary_used_while_healthy():
    circuit = StoreCircuit()
    repo = FailoverRepository("teams", UpTeams(), InMemoryTeamRepository(MemoryStore()), circuit)
    assert await repo.find_all() == ["from-primary"]
    assert repo.backend == "primary"


@pytest.mark.asyncio
async def test_switches_to_memory_and_stays_there(caplog):
    circuit = StoreCircuit()
    primary = DownTeams()
    teams = FailoverRepository("teams", primary, InMemoryTeamRepository(MemoryStore()), circuit)

    with caplog.at_level(logging.WARNING, logger="store.failover"):
        team = await teams.create("Support Team", "General customer support team")
        found = await teams.find_all()

    assert [t.id for t in found] == [team.id]
    assert primary.calls == 1
    assert circuit.tripped
    assert teams.backend == "memory"
    warnings = [r for r in caplog.records if r.name == "store.failover"]
    assert len(warnings) == 1


@pytest.mark.asyncio
async def test_circuit_is_shared_between_repositories():
    circuit = StoreCircuit()
    a = FailoverRepository("a", DownTeams(), InMemoryTeamRepository(MemoryStore()), circuit)
    up = UpTeams()
    b = FailoverRepository("b", up, InMemoryTeamRepository(MemoryStore()), circuit)
    await a.find_all()
    assert await b.find_all() == []
    assert b.backend == "memory"


def test_circuit_can_start_open():
    assert StoreCircuit(start_open=True).backend == "memory"
    assert StoreCircuit().backend == "primary"


@pytest.mark.asyncio
async def test_translate_store_errors_maps_connectivity_errors():
    @translate_store_errors
    async def refused():
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("refused"))

    @translate_store_errors
    async def timeout():
        raise asyncio.TimeoutError()

    with pytest.raises(StoreUnavailable):
        await refused()
    with pytest.raises(StoreUnavailable):
        await timeout()


@pytest.mark.asyncio
async def test_translate_store_errors_keeps_other_errors():
    @translate_store_errors
    async def bad_sql():
        raise DBAPIError("SELECT nope", {}, Exception("syntax error"))

    @translate_store_errors
    async def bug():
        raise KeyError("id")

    with pytest.raises(DBAPIError):
        await bad_sql()
    with pytest.raises(KeyError):
        await bug()
