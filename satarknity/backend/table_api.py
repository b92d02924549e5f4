"""
Tabular store endpoints (PostgREST).
Insert-one and select-all ordered queries against a single table.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TableAPI:
    """Thin wrapper over the /rest/v1 endpoints."""

    def __init__(self, backend):
        self._backend = backend

    def insert(
        self,
        table: str,
        row: Dict[str, Any],
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Insert one row and return the stored representation.

        Args:
            table: Table name
            row: Column values
            access_token: Inserting user's JWT

        Returns:
            Inserted rows as returned by the store
        """
        response = self._backend.request(
            "POST",
            f"/rest/v1/{table}",
            access_token=access_token,
            headers={"Prefer": "return=representation"},
            json=row,
        )
        return response.json() if response.content else []

    def select(
        self,
        table: str,
        order_by: Optional[str] = "created_at",
        ascending: bool = False,
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select all rows, optionally ordered by one column.

        Args:
            table: Table name
            order_by: Column to order by, None for store order
            ascending: Sort direction
            access_token: Reading user's JWT

        Returns:
            List of row dictionaries
        """
        params = {"select": "*"}
        if order_by:
            params["order"] = f"{order_by}.{'asc' if ascending else 'desc'}"

        response = self._backend.request(
            "GET",
            f"/rest/v1/{table}",
            access_token=access_token,
            params=params,
        )
        rows = response.json()
        logger.debug(f"Selected {len(rows)} rows from {table}")
        return rows or []
