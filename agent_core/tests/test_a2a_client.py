"""
Tests for A2A Client
"""

from datetime import datetime, timezone

import httpx
import pytest

from ..tools.a2a_client import (
    A2AClient,
    A2AClientError,
    A2AConnectionError,
    A2ATimeoutError,
)


def completed_task(request: httpx.Request, content: str = "Role created") -> httpx.Response:
    body = {
        "task_id": "t-1",
        "task_type": "agent_turn",
        "status": {"state": "completed"},
        "result": {"content": content},
        "agent_name": "aws",
        "agent_version": "1.0.0",
        "started_at": datetime.now(timezone.utc).isoformat(),
    }
    return httpx.Response(200, json=body)


def make_client(handler, max_retries: int = 3) -> A2AClient:
    return A2AClient(
        agent_registry={"aws": "http://aws:8080/"},
        max_retries=max_retries,
        retry_wait=0,
        transport=httpx.MockTransport(handler),
    )


class TestSendTask:
    """Tests for send_task"""

    @pytest.mark.asyncio
    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return completed_task(request)

        async with make_client(handler) as client:
            output = await client.send_task("aws", "agent_turn", {"agent_id": "aws"}, session_id="s-1")

        assert output.status.state == "completed"
        assert output.result == {"content": "Role created"}
        assert str(seen[0].url) == "http://aws:8080/a2a/tasks"

    @pytest.mark.asyncio
    async def test_connect_error_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_retries=3)

        with pytest.raises(A2AConnectionError):
            await client.send_task("aws", "agent_turn", {})

        assert len(calls) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_recovers_after_timeout(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return completed_task(request, content="Second try")

        async with make_client(handler) as client:
            output = await client.send_task("aws", "agent_turn", {})

        assert output.result["content"] == "Second try"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_http_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        async with make_client(handler) as client:
            with pytest.raises(A2AClientError) as exc_info:
                await client.send_task("aws", "agent_turn", {})

        assert not isinstance(exc_info.value, (A2AConnectionError, A2ATimeoutError))
        assert "500" in str(exc_info.value)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unregistered_agent(self):
        async with make_client(completed_task) as client:
            with pytest.raises(A2AClientError, match="not registered"):
                await client.send_task("gcp", "agent_turn", {})


class TestRegistry:
    def test_register_strips_trailing_slash(self):
        client = A2AClient()
        client.register_agent("azure", "http://azure:8080/")
        assert client.get_agent_url("azure") == "http://azure:8080"


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "healthy"})

        async with make_client(handler) as client:
            assert await client.health_check("aws")

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        async with make_client(handler) as client:
            assert not await client.health_check("aws")
