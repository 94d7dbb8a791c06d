"""Data Table node - CRUD over a table project's record array."""

from __future__ import annotations

import functools
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from .base import (
    BaseNode,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
)

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ToolResult, WorkflowNode

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _compare(a: Any, b: Any) -> int:
    # Mixed or missing values compare as equal rather than failing the sort
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        pass
    return 0


def _matches(record: dict[str, Any], criterion: dict[str, Any]) -> bool:
    value = record.get(criterion.get("field"))
    expected = criterion.get("value")
    operator = criterion.get("operator")
    if operator == "equals":
        return value == expected
    if operator == "notEquals":
        return value != expected
    if operator == "contains":
        return str(expected).lower() in str(value if value is not None else "").lower()
    return True


class DataTableNode(BaseNode):
    """Data Table node - create, get, update and delete table records."""

    node_description = NodeTypeDescription(
        name="data-table",
        display_name="Data Table",
        description="Insert, update, delete or query records in a data table",
        icon="fa:table",
        group=["data"],
        properties=[
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                default="get",
                required=True,
                description="Database operation",
                options=[
                    NodePropertyOption(name="Create", value="create"),
                    NodePropertyOption(name="Get", value="get"),
                    NodePropertyOption(name="Update", value="update"),
                    NodePropertyOption(name="Delete", value="delete"),
                ],
            ),
            NodeProperty(
                display_name="Table",
                name="tableId",
                type="string",
                required=True,
                description="ID of the data table",
            ),
            NodeProperty(
                display_name="Data",
                name="data",
                type="json",
                description="Record fields to create or update (JSON object)",
            ),
            NodeProperty(
                display_name="Record ID",
                name="recordId",
                type="string",
                description="ID of the record to update or delete",
            ),
            NodeProperty(
                display_name="Filter",
                name="filter",
                type="json",
                description='Filter criteria as JSON: [{"field", "operator", "value"}] '
                "with operator equals, notEquals or contains",
            ),
            NodeProperty(
                display_name="Sort",
                name="sort",
                type="json",
                description='Sort as JSON: {"field", "direction": "asc" | "desc"}',
            ),
            NodeProperty(
                display_name="Limit",
                name="limit",
                type="number",
                description="Maximum number of records to return",
            ),
        ],
    )

    @property
    def type(self) -> str:
        return "data-table"

    async def execute(
        self,
        node: WorkflowNode,
        inputs: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        operation = self.get_parameter(inputs, "operation", "get")
        table_id = self.get_parameter(inputs, "tableId")
        if not table_id:
            return self.failure("Data Table: tableId is required")
        if context.tables is None:
            return self.failure("Data Table: table store is not configured")

        table = await context.tables.get_table(str(table_id))
        if table is None:
            return self.failure(f"Data Table: Table {table_id} not found")

        records: list[dict[str, Any]] = list(table.records or [])

        if operation == "create":
            return await self._create(context, table, records, inputs)
        if operation == "get":
            return self._get(records, inputs)
        if operation == "update":
            return await self._update(context, table.id, records, inputs)
        if operation == "delete":
            return await self._delete(context, table.id, records, inputs)
        return self.failure(f'Data Table: Unknown operation "{operation}"')

    def _record_data(self, inputs: dict[str, Any]) -> dict[str, Any]:
        data = self.parse_json(inputs.get("data"), {})
        return dict(data) if isinstance(data, dict) else {}

    async def _create(
        self, context: ExecutionContext, table: Any, records: list[dict[str, Any]], inputs: dict[str, Any]
    ) -> ToolResult:
        record_data = self._record_data(inputs)

        # Timestamp columns the caller left empty are filled in
        for column in (table.table_schema or {}).get("fields") or []:
            if column.get("type") != "timestamp" or not column.get("name"):
                continue
            key = column.get("id") or column["name"]
            if not record_data.get(key) and not record_data.get(column["name"]):
                record_data[column["name"]] = _utc_timestamp()

        existing_ids = {r.get("id") for r in records}
        record_id = str(uuid.uuid4())
        while record_id in existing_ids:
            record_id = str(uuid.uuid4())
        new_record = {**record_data, "id": record_id}

        records = [*records, new_record]
        try:
            await context.tables.save_records(table.id, records)
        except SQLAlchemyError as e:
            return self.failure(f"Data Table create failed: {e}")
        return self.success({"result": new_record, "count": len(records), "success": True})

    def _get(self, records: list[dict[str, Any]], inputs: dict[str, Any]) -> ToolResult:
        filtered = records

        # Malformed filter or sort JSON is treated as absent
        criteria = self.parse_json(inputs.get("filter"))
        if isinstance(criteria, list):
            criteria = [c for c in criteria if isinstance(c, dict)]
            filtered = [r for r in filtered if all(_matches(r, c) for c in criteria)]

        sort = self.parse_json(inputs.get("sort"))
        if isinstance(sort, dict) and sort.get("field"):
            field_name = sort["field"]
            filtered = sorted(
                filtered,
                key=functools.cmp_to_key(lambda a, b: _compare(a.get(field_name), b.get(field_name))),
                reverse=sort.get("direction") == "desc",
            )

        limit = inputs.get("limit")
        if limit not in (None, "", 0, False):
            try:
                filtered = filtered[: int(float(limit))]
            except (TypeError, ValueError):
                pass

        return self.success({"result": filtered, "count": len(filtered), "success": True})

    async def _update(
        self, context: ExecutionContext, table_id: str, records: list[dict[str, Any]], inputs: dict[str, Any]
    ) -> ToolResult:
        record_id = self.get_parameter(inputs, "recordId")
        if not record_id:
            return self.failure("Data Table update: recordId is required")

        index = next((i for i, r in enumerate(records) if r.get("id") == record_id), None)
        if index is None:
            return self.failure(f"Data Table: Record {record_id} not found")

        records[index] = {**records[index], **self._record_data(inputs)}
        try:
            await context.tables.save_records(table_id, records)
        except SQLAlchemyError as e:
            return self.failure(f"Data Table update failed: {e}")
        return self.success({"result": records[index], "count": 1, "success": True})

    async def _delete(
        self, context: ExecutionContext, table_id: str, records: list[dict[str, Any]], inputs: dict[str, Any]
    ) -> ToolResult:
        record_id = self.get_parameter(inputs, "recordId")
        if not record_id:
            return self.failure("Data Table delete: recordId is required")

        remaining = [r for r in records if r.get("id") != record_id]
        if len(remaining) != len(records):
            try:
                await context.tables.save_records(table_id, remaining)
            except SQLAlchemyError as e:
                return self.failure(f"Data Table delete failed: {e}")
        else:
            logger.info("Record %s not in table %s, nothing to delete", record_id, table_id)
        return self.success({"result": None, "count": len(remaining), "success": True})
