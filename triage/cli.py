"""Operator commands for the auto-assignment system.

    triage-assign assign:single <queryId>     assign a single query
    triage-assign assign:all                  assign all unassigned queries
    triage-assign assign:stats                show assignment statistics
    triage-assign assign:reassign <queryId>   re-assign a query
    triage-assign assign:filter [--status ..] assign by filter through the HTTP API
    triage-assign assign:help                 show this help
"""
import argparse
import asyncio
import logging
import sys
import httpx
from dotenv import load_dotenv
from triage.bootstrap import bootstrap
from triage.core.config import settings
from triage.core.logging import setup_logging
from triage.modules.triage.schemas import BatchFilters, BatchResult, TriageResult
from triage.platform.provider_registry import registry

log = logging.getLogger("cli")

COMMAND_ALIASES = {
    "single": "single", "assign": "single",
    "all": "all", "assign-all": "all",
    "stats": "stats", "statistics": "stats",
    "reassign": "reassign",
    "filter": "filter",
    "help": "help",
}

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="triage-assign", add_help=False)
    parser.add_argument("command", nargs="?", default="help")
    parser.add_argument("query_id", nargs="?")
    parser.add_argument("--status")
    parser.add_argument("--priority")
    parser.add_argument("--channel")
    parser.add_argument("--unassigned-only", action="store_true")
    parser.add_argument("--api-url", default=None)
    return parser

def resolve_command(raw: str) -> str | None:
    name = raw.split(":", 1)[1] if raw.startswith("assign:") else raw
    return COMMAND_ALIASES.get(name)

def print_triage(result: TriageResult, title: str) -> None:
    print(f"✅ {title}")
    print(f"   Query ID: {result.query_id}")
    print(f"   Team: {result.assignment.team_name or 'Not assigned'}")
    print(f"   User: {result.assignment.user_name or 'Not assigned'}")
    print(f"   Priority: {result.priority}")
    print(f"   Status: {result.status}")
    print(f"   Reason: {result.assignment.reason}\n")

def print_batch(result: BatchResult) -> None:
    print("✅ Batch assignment complete!")
    print(f"   Total processed: {result.processed}")
    print(f"   Successfully assigned: {result.assigned}")
    print(f"   Skipped: {result.skipped}")
    print(f"   Errors: {result.errors}\n")
    if result.results:
        print("📊 Sample results (first 10):")
        for r in result.results[:10]:
            outcome = r.team_name if r.success else r.error
            print(f"   {'✅' if r.success else '❌'} {r.query_id[:8]}... → {outcome}")
        if len(result.results) > 10:
            print(f"   ... and {len(result.results) - 10} more\n")

async def show_stats() -> None:
    stats = await registry.batch().get_assignment_stats()
    print("\n📊 Assignment Statistics\n")
    print(f"Total Queries: {stats.total}")
    print(f"Assigned: {stats.assigned}")
    print(f"Unassigned: {stats.unassigned}")
    print("\nBy Team:")
    for team, count in sorted(stats.by_team.items(), key=lambda kv: kv[1], reverse=True):
        print(f"   {team}: {count} ({count / stats.total * 100:.1f}%)")
    if stats.unassigned:
        print(f"   Unassigned: {stats.unassigned} ({stats.unassigned / stats.total * 100:.1f}%)\n")
    else:
        print("   ✅ All queries are assigned!\n")

async def assign_by_filter(args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None = None) -> None:
    filters = BatchFilters(
        status=args.status, priority=args.priority, channel=args.channel, unassigned_only=args.unassigned_only,
    )
    base_url = (args.api_url or settings.API_BASE_URL).rstrip("/")
    print(f"\n🔍 Assigning queries by filter {filters.model_dump(exclude_defaults=True)}...\n")
    async with httpx.AsyncClient(base_url=base_url, transport=transport, timeout=300) as client:
        response = await client.post(f"{settings.API_PREFIX}/assignment/assign-by-filter", json=filters.model_dump())
        response.raise_for_status()
    print_batch(BatchResult.model_validate(response.json()))

def show_help() -> None:
    print(__doc__)

async def run(argv: list[str], transport: httpx.AsyncBaseTransport | None = None) -> int:
    args = build_parser().parse_args(argv)
    command = resolve_command(args.command)
    if command is None:
        print(f"❌ Unknown command: {args.command}")
        show_help()
        return 1
    if command == "help":
        show_help()
        return 0
    if command in ("single", "reassign") and not args.query_id:
        print("❌ Error: Query ID is required")
        print(f"Usage: triage-assign assign:{command} <queryId>")
        return 1

    try:
        if command == "filter":
            await assign_by_filter(args, transport)
            return 0
        await bootstrap()
        batch = registry.batch()
        if command == "single":
            print(f"\n🔍 Assigning query: {args.query_id}\n")
            print_triage(await batch.assign_query(args.query_id), "Assignment successful!")
        elif command == "reassign":
            print(f"\n🔄 Re-assigning query: {args.query_id}\n")
            print_triage(await batch.reassign_query(args.query_id), "Re-assignment successful!")
        elif command == "all":
            print("\n🔄 Assigning all unassigned queries...\n")
            print_batch(await batch.assign_all_unassigned())
        elif command == "stats":
            await show_stats()
    except Exception as e:
        log.error("Assignment utility error: %s", e, exc_info=True)
        print(f"❌ Error: {e}")
        return 1
    return 0

def main() -> None:
    load_dotenv()
    setup_logging()
    sys.exit(asyncio.run(run(sys.argv[1:])))

if __name__ == "__main__":
    main()
