"""
Tests for the retrying upstream client.

Covers:
- Retry on 5xx and transport errors with exponential backoff
- No retry on 4xx and malformed responses
- Error tagging and reporting after exhaustion
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from catalog_service.domain.exceptions import (
    ClientError,
    NetworkError,
    ServerError,
    ValidationError,
)
from catalog_service.infrastructure.retrying_client import RetryingClient


def scripted(*outcomes):
    """Request factory returning (or raising) the given outcomes in order."""
    calls = []

    async def factory():
        outcome = outcomes[len(calls)]
        calls.append(outcome)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    factory.calls = calls
    return factory


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def reporter():
    return MagicMock()


@pytest.fixture
def client(sleep, reporter):
    return RetryingClient(reporter=reporter, sleep=sleep)


class TestRetries:
    """Test retry behaviour."""

    @pytest.mark.asyncio
    async def test_server_errors_then_success(self, client, sleep, reporter):
        """Test 500, 500, 200 succeeds on the third attempt."""
        factory = scripted(
            httpx.Response(500),
            httpx.Response(500),
            httpx.Response(200, json={"locations": [{"id": "L1"}]}),
        )

        data = await client.execute(factory, "getLocations", ["locations"])

        assert data == {"locations": [{"id": "L1"}]}
        assert len(factory.calls) == 3
        assert sleep.await_count == 2
        reporter.report.assert_not_called()

    @pytest.mark.asyncio
    async def test_backoff_delays_grow_exponentially(self, client, sleep):
        factory = scripted(httpx.Response(503), httpx.Response(503), httpx.Response(200, json={}))

        await client.execute(factory, "getProducts")

        first, second = (call.args[0] for call in sleep.await_args_list)
        assert 1.0 <= first <= 2.0
        assert 2.0 <= second <= 3.0

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client, sleep, reporter):
        """Test 404 fails after exactly one attempt."""
        factory = scripted(httpx.Response(404, json={"errors": [{"detail": "Object not found"}]}))

        with pytest.raises(ClientError) as exc_info:
            await client.execute(factory, "getCategories")

        assert len(factory.calls) == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.reason == "Object not found"
        sleep.assert_not_awaited()
        reporter.report.assert_called_once()

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_attempts(self, client, reporter):
        factory = scripted(httpx.Response(500), httpx.Response(502), httpx.Response(500))

        with pytest.raises(ServerError) as exc_info:
            await client.execute(factory, "getDiscounts")

        error = exc_info.value
        assert len(factory.calls) == 3
        assert error.operation == "getDiscounts"
        assert error.details["attempts"] == 3
        reporter.report.assert_called_once_with(error, "getDiscounts", 3)

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, client):
        factory = scripted(
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("slow"),
            httpx.Response(200, json={"objects": []}),
        )

        data = await client.execute(factory, "getModifiers")

        assert data == {"objects": []}
        assert len(factory.calls) == 3

    @pytest.mark.asyncio
    async def test_transport_errors_exhaust_as_network_error(self, client):
        factory = scripted(*[httpx.ConnectError("refused")] * 3)

        with pytest.raises(NetworkError) as exc_info:
            await client.execute(factory, "getLocations")

        assert exc_info.value.details["attempts"] == 3

    @pytest.mark.asyncio
    async def test_attempt_limit_is_configurable(self, sleep, reporter):
        client = RetryingClient(max_attempts=1, reporter=reporter, sleep=sleep)
        factory = scripted(httpx.Response(500))

        with pytest.raises(ServerError):
            await client.execute(factory, "createOrder")

        assert len(factory.calls) == 1


class TestResponseValidation:
    """Test body validation."""

    @pytest.mark.asyncio
    async def test_missing_expected_field(self, client):
        factory = scripted(httpx.Response(200, json={"objects": []}))

        with pytest.raises(ValidationError) as exc_info:
            await client.execute(factory, "getLocations", ["locations"])

        assert exc_info.value.details["missing_field"] == "locations"
        assert len(factory.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_body_with_expected_fields(self, client):
        factory = scripted(httpx.Response(200, json={}))

        with pytest.raises(ValidationError):
            await client.execute(factory, "getLocations", ["locations"])

    @pytest.mark.asyncio
    async def test_non_json_body(self, client):
        factory = scripted(httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(ValidationError):
            await client.execute(factory, "getProducts")

        assert len(factory.calls) == 1

    @pytest.mark.asyncio
    async def test_no_expected_fields_accepts_any_json(self, client):
        factory = scripted(httpx.Response(200, json={"anything": 1}))

        assert await client.execute(factory, "getProducts") == {"anything": 1}
