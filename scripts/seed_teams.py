import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from triage.bootstrap import bootstrap
from triage.core.logging import setup_logging
from triage.platform.provider_registry import registry

async def main():
    """
    Creates the canonical teams and the demo agents/managers if they are missing.
    """
    print("Seeding teams...")
    await bootstrap(with_users=True)
    teams = await registry.teams().find_all()
    for team in teams:
        users = await registry.teams().find_available_users(team.id)
        print(f"  - {team.name}: {len(users)} available user(s)")
    print(f"Done ({registry.circuit().backend} store).")

if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
