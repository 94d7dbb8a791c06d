"""Tests for node execution: http-request, data-table, slack and proxy nodes."""

import json
from datetime import datetime

import httpx
import pytest

from flowchat.engine.node_executor import NodeExecutor
from flowchat.engine.node_registry import NodeRegistryClass
from flowchat.engine.types import WorkflowNode
from flowchat.integrations import ProxyClient
from flowchat.nodes import BaseNode, SlackNode
from flowchat.repositories import TableRepository

from .conftest import make_client, make_context, seed_table

executor = NodeExecutor()


# ============================================================================
# http-request
# ============================================================================


class TestHttpRequest:
    async def test_get_request_parses_json(self):
        client, transport = make_client(lambda r: httpx.Response(200, json={"temp": 21}))
        node = WorkflowNode(id="h1", type="http-request", inputs={"url": "https://x.test", "body": '{"ignored": true}'})

        result = await executor.execute(node, make_context(http_client=client))

        assert result.success
        assert result.output == {"success": True, "status": 200, "data": {"temp": 21}}
        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.host == "x.test"
        assert request.content == b""

    async def test_post_sends_body_headers_and_bearer_key(self):
        client, transport = make_client(lambda r: httpx.Response(201, text="created"))
        node = WorkflowNode(
            id="h2",
            type="http-request",
            inputs={
                "url": "https://api.test/items",
                "method": "post",
                "headers": '{"X-Trace": "abc"}',
                "body": {"name": "{{chatContext.userMessage}}"},
                "apiKey": "{{env.TOKEN}}",
            },
        )
        context = make_context(
            http_client=client,
            values={"env": {"TOKEN": "secret"}, "chatContext": {"userMessage": "widget"}},
        )

        result = await executor.execute(node, context)

        assert result.success
        assert result.output["data"] == "created"
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.headers["X-Trace"] == "abc"
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {"name": "widget"}

    async def test_malformed_headers_are_ignored(self):
        client, transport = make_client(lambda r: httpx.Response(200, json={}))
        node = WorkflowNode(id="h3", type="http-request", inputs={"url": "https://x.test", "headers": "{not json"})

        result = await executor.execute(node, make_context(http_client=client))

        assert result.success
        assert len(transport.requests) == 1

    async def test_empty_url_fails_fast(self):
        client, transport = make_client(lambda r: httpx.Response(200))
        node = WorkflowNode(id="h4", type="http-request", inputs={"url": "  "})

        result = await executor.execute(node, make_context(http_client=client))

        assert not result.success
        assert result.error == "URL is empty"
        assert transport.requests == []

    async def test_non_2xx_is_a_failure(self):
        client, _ = make_client(lambda r: httpx.Response(404, json={"message": "nope"}))
        node = WorkflowNode(id="h5", type="http-request", inputs={"url": "https://x.test/missing"})

        result = await executor.execute(node, make_context(http_client=client))

        assert not result.success
        assert result.error.startswith("HTTP 404")
        assert result.output["data"] == {"message": "nope"}

    async def test_transport_errors_become_failures(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(refuse)
        node = WorkflowNode(id="h6", type="http-request", inputs={"url": "https://down.test"})

        result = await executor.execute(node, make_context(http_client=client))

        assert not result.success
        assert "HTTP Request failed" in result.error


# ============================================================================
# data-table
# ============================================================================


def _table_node(**inputs):
    return WorkflowNode(id="dt", type="data-table", inputs={"tableId": "table-1", **inputs})


class TestDataTable:
    async def test_create_fills_timestamp_fields(self, db):
        await seed_table(db, fields=[{"name": "createdAt", "type": "timestamp"}, {"name": "title", "type": "text"}])
        tables = TableRepository(db)

        result = await executor.execute(
            _table_node(operation="create", data='{"title": "x"}'),
            make_context(tables=tables),
        )

        assert result.success
        record = result.output["result"]
        assert record["title"] == "x"
        assert record["id"]
        datetime.fromisoformat(record["createdAt"].replace("Z", "+00:00"))
        stored = await tables.get_table("table-1")
        assert stored.records == [record]
        assert result.output["count"] == 1

    async def test_create_keeps_caller_timestamp_and_generates_unique_id(self, db):
        await seed_table(db, records=[{"id": "r1"}], fields=[{"name": "createdAt", "type": "timestamp"}])
        tables = TableRepository(db)

        result = await executor.execute(
            _table_node(operation="create", data={"createdAt": "2024-01-01", "id": "r1"}),
            make_context(tables=tables),
        )

        record = result.output["result"]
        assert record["createdAt"] == "2024-01-01"
        assert record["id"] != "r1"
        assert len((await tables.get_table("table-1")).records) == 2

    async def test_create_from_field_map(self, db):
        await seed_table(db)
        tables = TableRepository(db)

        result = await executor.execute(
            _table_node(operation="create", **{"fieldMap.name": "{{chatContext.userMessage}}"}),
            make_context(tables=tables, values={"chatContext": {"userMessage": "Ada"}}),
        )

        assert result.output["result"]["name"] == "Ada"

    async def test_get_filters_sorts_and_limits(self, db):
        await seed_table(db, records=[
            {"id": "1", "name": "Alice", "score": 3},
            {"id": "2", "name": "bob", "score": 9},
            {"id": "3", "name": "ALBERT", "score": 5},
        ])

        result = await executor.execute(
            _table_node(
                operation="get",
                filter='[{"field": "name", "operator": "contains", "value": "al"}]',
                sort={"field": "score", "direction": "desc"},
                limit="1",
            ),
            make_context(tables=TableRepository(db)),
        )

        assert result.success
        assert [r["id"] for r in result.output["result"]] == ["3"]
        assert result.output["count"] == 1

    async def test_get_ignores_malformed_filter_and_sort(self, db):
        await seed_table(db, records=[{"id": "1"}, {"id": "2"}])

        result = await executor.execute(
            _table_node(operation="get", filter="[oops", sort="{bad"),
            make_context(tables=TableRepository(db)),
        )

        assert result.success
        assert result.output["count"] == 2

    async def test_update_missing_record_fails_without_writing(self, db):
        await seed_table(db, records=[{"id": "1", "name": "Alice"}])
        tables = TableRepository(db)

        result = await executor.execute(
            _table_node(operation="update", recordId="nope", data={"name": "Bob"}),
            make_context(tables=tables),
        )

        assert not result.success
        assert result.error == "Data Table: Record nope not found"
        assert (await tables.get_table("table-1")).records == [{"id": "1", "name": "Alice"}]

    async def test_update_merges_data(self, db):
        await seed_table(db, records=[{"id": "1", "name": "Alice", "stage": "new"}])
        tables = TableRepository(db)

        result = await executor.execute(
            _table_node(operation="update", recordId="1", data='{"stage": "won"}'),
            make_context(tables=tables),
        )

        assert result.success
        assert (await tables.get_table("table-1")).records == [{"id": "1", "name": "Alice", "stage": "won"}]

    async def test_delete_is_a_no_op_for_missing_records(self, db):
        await seed_table(db, records=[{"id": "1"}])
        tables = TableRepository(db)

        missing = await executor.execute(_table_node(operation="delete", recordId="2"), make_context(tables=tables))
        assert missing.success
        assert (await tables.get_table("table-1")).records == [{"id": "1"}]

        removed = await executor.execute(_table_node(operation="delete", recordId="1"), make_context(tables=tables))
        assert removed.success
        assert (await tables.get_table("table-1")).records == []

    async def test_unknown_operation_and_missing_table(self, db):
        await seed_table(db)
        tables = TableRepository(db)

        unknown = await executor.execute(_table_node(operation="truncate"), make_context(tables=tables))
        assert unknown.error == 'Data Table: Unknown operation "truncate"'

        missing = await executor.execute(
            WorkflowNode(id="dt", type="data-table", inputs={"tableId": "other"}),
            make_context(tables=tables),
        )
        assert missing.error == "Data Table: Table other not found"


# ============================================================================
# slack and generic integrations
# ============================================================================


def _proxy_context(handler):
    client, transport = make_client(handler)
    proxy = ProxyClient(client, base_url="https://proxy.test/functions/v1", service_key="svc")
    return make_context(http_client=client, proxy=proxy), transport


class TestSlack:
    def test_webhook_payload(self):
        payload = SlackNode().build_payload({"webhookUrl": "https://hooks.slack.test/a", "message": "hi", "username": ""})
        assert payload == {"action": "sendViaWebhook", "webhookUrl": "https://hooks.slack.test/a", "text": "hi"}

    def test_api_payload(self):
        payload = SlackNode().build_payload({
            "connectionMethod": "api",
            "apiKey": "xoxb-1",
            "channel": "#leads",
            "text": "New lead",
        })
        assert payload == {"action": "slackSendMessage", "apiKey": "xoxb-1", "channel": "#leads", "text": "New lead"}

    async def test_sends_through_slack_action(self):
        context, transport = _proxy_context(lambda r: httpx.Response(200, json={"ok": True}))
        node = WorkflowNode(id="s1", type="slack", inputs={"text": "Hello", "webhookUrl": "https://hooks.slack.test/a"})

        result = await executor.execute(node, context)

        assert result.success
        assert result.output == {"ok": True, "success": True}
        request = transport.requests[0]
        assert request.url.path.endswith("/slack-action")
        assert request.headers["Authorization"] == "Bearer svc"

    async def test_error_field_is_a_failure(self):
        context, _ = _proxy_context(lambda r: httpx.Response(200, json={"error": "channel_not_found"}))
        node = WorkflowNode(id="s2", type="slack", inputs={"text": "Hello", "connectionMethod": "api"})

        result = await executor.execute(node, context)

        assert not result.success
        assert result.error == "Slack: channel_not_found"


class TestProxyNodes:
    async def test_mapped_type_uses_its_endpoint_and_default_action(self):
        context, transport = _proxy_context(lambda r: httpx.Response(200, json={"id": "msg-1"}))
        node = WorkflowNode(id="g1", type="gmail", inputs={"to": "a@b.test", "subject": "Hi"})

        result = await executor.execute(node, context)

        assert result.success
        assert result.output == {"id": "msg-1", "success": True}
        request = transport.requests[0]
        assert request.url.path.endswith("/gmail-proxy")
        assert json.loads(request.content) == {"to": "a@b.test", "subject": "Hi", "action": "execute"}

    async def test_unmapped_type_retries_alternate_suffix(self):
        def handler(request):
            if request.url.path.endswith("/acme-proxy"):
                raise httpx.ConnectError("unreachable", request=request)
            return httpx.Response(200, json={"done": True})

        context, transport = _proxy_context(handler)
        result = await executor.execute(WorkflowNode(id="a1", type="acme"), context)

        assert result.success
        assert [r.url.path.rsplit("/", 1)[-1] for r in transport.requests] == ["acme-proxy", "acme-action"]

    async def test_mapped_type_does_not_retry(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        context, transport = _proxy_context(handler)
        result = await executor.execute(WorkflowNode(id="n1", type="notion"), context)

        assert not result.success
        assert result.error.startswith("notion: Failed to invoke notion-action")
        assert len(transport.requests) == 1

    async def test_not_found_endpoint_error(self):
        context, _ = _proxy_context(lambda r: httpx.Response(404, text="Not Found"))
        result = await executor.execute(WorkflowNode(id="z1", type="zoom"), context)

        assert result.error == 'zoom: Endpoint "zoom-proxy" not found'


# ============================================================================
# executor boundary
# ============================================================================


class ExplodingNode(BaseNode):
    @property
    def type(self) -> str:
        return "explode"

    async def execute(self, node, inputs, context):
        raise RuntimeError("kaboom")


async def test_handler_exceptions_become_failed_results():
    registry = NodeRegistryClass()
    registry.register(ExplodingNode())
    reported = []

    async def sink(flow_id, node_id, message, metadata):
        reported.append((flow_id, node_id, message))

    result = await NodeExecutor(registry=registry, error_sink=sink).execute(
        WorkflowNode(id="x1", type="explode", label="Boom"), make_context()
    )

    assert not result.success
    assert result.error == "kaboom"
    assert reported == [("flow-1", "x1", 'Node "Boom" execution failed: kaboom')]


@pytest.mark.parametrize("node_type", ["gmail", "slack", "acme"])
async def test_proxy_nodes_without_a_proxy_fail_cleanly(node_type):
    result = await executor.execute(WorkflowNode(id="p", type=node_type), make_context())
    assert not result.success
