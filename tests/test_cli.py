import httpx
import pytest

from triage import cli
from triage.main import app
from triage.modules.queries.schemas import QueryCreate


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("assign:single", "single"),
        ("assign:assign-all", "all"),
        ("statistics", "stats"),
        ("assign:reassign", "reassign"),
        ("assign:nope", None),
    ],
)
def test_resolve_command(raw, expected):
    assert cli.resolve_command(raw) == expected


@pytest.mark.asyncio
async def test_help_and_unknown_commands(capsys):
    assert await cli.run([]) == 0
    assert await cli.run(["assign:help"]) == 0
    assert await cli.run(["assign:explode"]) == 1
    assert "Unknown command" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_single_requires_query_id(capsys):
    assert await cli.run(["assign:single"]) == 1
    assert "Query ID is required" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_single_assigns_query(memory_registry, capsys):
    query = await memory_registry.queries().create(QueryCreate(channel="email", subject="s", message="Where is my invoice?"))
    assert await cli.run(["assign:single", query.id]) == 0
    out = capsys.readouterr().out
    assert "Assignment successful!" in out
    assert "Team: Support Team" in out


@pytest.mark.asyncio
async def test_single_unknown_query_fails(memory_registry, capsys):
    assert await cli.run(["assign:single", "missing"]) == 1
    assert "Query missing not found" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_all_and_stats(memory_registry, capsys):
    await memory_registry.queries().create(QueryCreate(channel="chat", subject="s", message="hello"))
    assert await cli.run(["assign:all"]) == 0
    assert await cli.run(["assign:stats"]) == 0
    out = capsys.readouterr().out
    assert "Successfully assigned: 1" in out
    assert "Support Team: 1 (100.0%)" in out
    assert "All queries are assigned!" in out


@pytest.mark.asyncio
async def test_filter_goes_through_http_api(memory_registry, capsys):
    await memory_registry.queries().create(QueryCreate(channel="social", subject="s", message="hello"))
    await memory_registry.queries().create(QueryCreate(channel="email", subject="s", message="hello"))
    argv = ["assign:filter", "--channel", "social", "--api-url", "http://test"]
    assert await cli.run(argv, transport=httpx.ASGITransport(app=app)) == 0
    assert "Total processed: 1" in capsys.readouterr().out
