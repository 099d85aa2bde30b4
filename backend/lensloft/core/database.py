"""
Store connections

This module centralizes every way the backend reaches the database:
- Supabase async client (PostgREST) for all cart, wishlist, address and order queries
- psycopg2 direct connections for the transactional order writer
- SQLAlchemy metadata for the schema bootstrap (lensloft.models)
"""
import asyncio
import logging
import time
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from supabase import AsyncClient, acreate_client

from .config import settings

logger = logging.getLogger(__name__)

# Seconds before a psycopg2 connection attempt is abandoned
CONNECTION_TIMEOUT = 10


# ============================================================================
# SQLAlchemy (schema declaration only)
# ============================================================================

Base = declarative_base()

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Lazily build the SQLAlchemy engine from DATABASE_URL"""
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL not configured")
        _engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
    return _engine


def create_schema(engine: Optional[Engine] = None) -> None:
    """
    Create the cart, wishlist, addresses, orders and order_items tables.

    Importing lensloft.models registers the tables on Base.metadata.
    """
    import lensloft.models  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


# ============================================================================
# Supabase async client
# ============================================================================

_supabase: Optional[AsyncClient] = None
_supabase_lock = asyncio.Lock()


async def get_supabase() -> AsyncClient:
    """
    Shared Supabase client (service role).

    Every query issued through it filters by user_id explicitly, so row level
    security is not relied upon.
    """
    global _supabase
    if _supabase is None:
        async with _supabase_lock:
            if _supabase is None:
                if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
                    raise RuntimeError("SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY not configured")
                _supabase = await acreate_client(
                    settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
                )
    return _supabase


# ============================================================================
# psycopg2 connection with retry logic (SSL failure recovery)
# ============================================================================

def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Handles intermittent Supabase pooler failures by retrying with
    exponential backoff.

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)

    Returns:
        psycopg2 connection with RealDictCursor

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(
                database_url,
                cursor_factory=RealDictCursor,
                connect_timeout=CONNECTION_TIMEOUT,
            )
            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")

    raise last_error
