"""Primary/fallback store switching for repositories.

Every repository is built as a ``FailoverRepository`` around a SQL backend and
an in-memory backend. All of them share one ``StoreCircuit`` per process: the
first ``StoreUnavailable`` raised by any primary backend trips the circuit and
from then on every repository call is served by the in-memory store until the
process restarts. The current backend is exposed through ``StoreCircuit.backend``
and reported on ``/health``.
"""
import asyncio
import functools
import logging
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from triage.core.errors import StoreUnavailable

log = logging.getLogger("store.failover")

_CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, ConnectionError, OSError, asyncio.TimeoutError)

def translate_store_errors(fn):
    """Re-raise connectivity problems of a SQL repository method as StoreUnavailable."""
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except _CONNECTIVITY_ERRORS as e:
            raise StoreUnavailable(str(e)) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise StoreUnavailable(str(e)) from e
            raise
    return wrapper

class StoreCircuit:
    def __init__(self, start_open: bool = False):
        self._tripped = start_open

    @property
    def tripped(self) -> bool:
        return self._tripped

    @property
    def backend(self) -> str:
        return "memory" if self._tripped else "primary"

    def trip(self, err: Exception, source: str) -> None:
        if self._tripped:
            return
        self._tripped = True
        log.warning("Primary store unavailable (%s via %s); switching to in-memory store for the rest of this process", err, source)

class FailoverRepository:
    def __init__(self, name: str, primary, fallback, circuit: StoreCircuit):
        self._name = name
        self._primary = primary
        self._fallback = fallback
        self._circuit = circuit

    @property
    def backend(self) -> str:
        return self._circuit.backend

    def __getattr__(self, attr: str):
        fallback_method = getattr(self._fallback, attr)
        if not callable(fallback_method):
            return fallback_method

        async def call(*args, **kwargs):
            if self._circuit.tripped:
                return await fallback_method(*args, **kwargs)
            try:
                return await getattr(self._primary, attr)(*args, **kwargs)
            except StoreUnavailable as e:
                self._circuit.trip(e, f"{self._name}.{attr}")
                return await fallback_method(*args, **kwargs)

        call.__name__ = attr
        return call
