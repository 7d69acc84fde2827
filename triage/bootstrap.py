import logging
from sqlalchemy.exc import SQLAlchemyError
from triage.core.config import settings
from triage.modules.teams.service import ensure_default_teams
from triage.platform.provider_registry import registry

log = logging.getLogger(__name__)

async def bootstrap(with_users: bool = False) -> None:
    """Startup pre-conditions shared by the API, the workers and the CLI.

    Triage assumes the canonical teams exist; they are ensured here, never
    from inside a request or a job.
    """
    if settings.STORE_PROVIDER == "postgres":
        from triage.core.db import init_models
        try:
            await init_models()
        except (OSError, SQLAlchemyError) as e:
            # the repositories fall back to the in-memory store on first use
            log.warning("Database schema init failed: %s", e)
    await ensure_default_teams(registry.teams(), with_users=with_users)
