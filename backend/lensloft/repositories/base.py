"""
Shared plumbing for the Supabase repositories

Every query goes through execute(), which translates PostgREST and transport
failures into the storefront error taxonomy (lensloft.core.errors).
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from lensloft.core.database import get_supabase
from lensloft.core.errors import DuplicateEntry, NotFound, StoreError, TransientStoreError

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"
# PostgREST: .single() matched zero rows
NO_ROWS = "PGRST116"
# Connection, resource, operator-intervention and serialization classes, and
# PostgREST's own connection errors (PGRST000-PGRST003)
TRANSIENT_PREFIXES = ("08", "40", "53", "57", "PGRST0")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def execute(query, operation: str):
    """
    Run a PostgREST query builder and return its APIResponse.

    Raises:
        DuplicateEntry: unique constraint violated
        NotFound: a single-row query matched nothing
        TransientStoreError: network/timeout/server-side failure
        StoreError: any other rejection from the store
    """
    try:
        return await query.execute()
    except APIError as e:
        code = str(e.code or "")
        if code == UNIQUE_VIOLATION:
            raise DuplicateEntry(f"{operation}: {e.message}") from e
        if code == NO_ROWS:
            raise NotFound(f"{operation}: no matching row") from e
        logger.error(f"{operation} failed: [{code}] {e.message}")
        if code.startswith(TRANSIENT_PREFIXES):
            raise TransientStoreError(f"{operation}: {e.message}") from e
        raise StoreError(f"{operation}: {e.message}") from e
    except httpx.HTTPError as e:
        logger.error(f"{operation} failed: {type(e).__name__}: {e}")
        raise TransientStoreError(f"{operation}: {e}") from e


class SupabaseRepository:
    """
    Base class for repositories over one Supabase table

    The client is injected for tests; otherwise the shared service client
    from lensloft.core.database is used.
    """

    table_name: str = ""

    def __init__(self, client: Optional[AsyncClient] = None):
        self._client = client

    async def _table(self, name: Optional[str] = None):
        client = self._client or await get_supabase()
        return client.table(name or self.table_name)
