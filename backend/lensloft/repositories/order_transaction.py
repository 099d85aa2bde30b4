"""
Transactional order writer (direct Postgres)

When DATABASE_URL is configured the order header and its line items are
written in a single psycopg2 transaction: either both appear or neither does.
"""
import asyncio
import logging
from typing import Any, Dict, List
from uuid import UUID

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from lensloft.core.database import get_db_connection_dict_with_retry
from lensloft.core.errors import DuplicateEntry, OrderCreationFailed
from lensloft.domain.order import Order, OrderItem

logger = logging.getLogger(__name__)

ORDER_COLUMNS = [
    "user_id", "order_number", "status", "payment_status", "payment_method",
    "subtotal", "shipping_cost", "tax", "discount", "total", "currency",
    "shipping_address", "billing_address", "notes",
]
ITEM_COLUMNS = [
    "order_id", "product_id", "product_name", "quantity",
    "unit_price", "total_price", "product_snapshot",
]
JSON_COLUMNS = {"shipping_address", "billing_address", "product_snapshot"}


def _insert_sql(table: str, columns: List[str]) -> str:
    placeholders = ", ".join(["%s"] * len(columns))
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *"


def _params(row: Dict[str, Any], columns: List[str]) -> tuple:
    return tuple(
        Json(row.get(col)) if col in JSON_COLUMNS and row.get(col) is not None else row.get(col)
        for col in columns
    )


def _normalize(row: dict) -> dict:
    """psycopg2 hands back UUID objects; the domain models use string IDs"""
    return {key: (str(value) if isinstance(value, UUID) else value) for key, value in dict(row).items()}


class PostgresOrderWriter:
    """Writes an order header and its items atomically"""

    def write_sync(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        """
        Insert header + items in one transaction

        Raises:
            DuplicateEntry: order_number already taken (nothing written)
            OrderCreationFailed: any other failure (rolled back, safe to retry)
        """
        try:
            conn = get_db_connection_dict_with_retry()
        except psycopg2.Error as e:
            logger.error(f"Order {header.get('order_number')}: database unreachable: {e}")
            raise OrderCreationFailed(
                f"Failed to create order: {e}", stage="header",
                order_number=header.get("order_number"),
            ) from e
        cursor = conn.cursor()
        stage = "header"

        try:
            cursor.execute(_insert_sql("orders", ORDER_COLUMNS), _params(header, ORDER_COLUMNS))
            order_row = _normalize(cursor.fetchone())

            stage = "items"
            item_rows = []
            for item in items:
                params = _params({**item, "order_id": order_row["id"]}, ITEM_COLUMNS)
                cursor.execute(_insert_sql("order_items", ITEM_COLUMNS), params)
                item_rows.append(_normalize(cursor.fetchone()))

            conn.commit()

            order = Order(**order_row)
            order.items = [OrderItem(**row) for row in item_rows]
            return order

        except pg_errors.UniqueViolation as e:
            conn.rollback()
            if stage == "header":
                raise DuplicateEntry(f"order number {header.get('order_number')} already exists") from e
            raise OrderCreationFailed(
                f"Failed to create order items: {e}", stage=stage,
                order_number=header.get("order_number"),
            ) from e
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Order transaction rolled back at {stage} stage: {e}")
            raise OrderCreationFailed(
                f"Failed to create order: {e}", stage=stage,
                order_number=header.get("order_number"),
            ) from e
        finally:
            cursor.close()
            conn.close()

    async def write(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        return await asyncio.to_thread(self.write_sync, header, items)
