"""Tests for the resilient call wrapper."""
from unittest.mock import AsyncMock
import httpx
import pytest
from pipeline_orchestrator.core.errors import RetryError
from pipeline_orchestrator.core.retry import RetryPolicy, is_transient


@pytest.mark.asyncio
async def test_failing_operation_invoked_exactly_attempts_times():
    """Test that attempts=3 invokes an always-failing operation three times."""
    operation = AsyncMock(side_effect=ConnectionError("connection reset"))
    policy = RetryPolicy(attempts=3, delay=0)

    with pytest.raises(RetryError) as exc:
        await policy.call("getBuild", operation)

    assert operation.await_count == 3
    assert exc.value.operation == "getBuild"
    assert exc.value.attempts == 3
    assert str(exc.value) == "Failed retrying <getBuild> for <3> times. connection reset"
    assert isinstance(exc.value.cause, ConnectionError)


@pytest.mark.asyncio
async def test_recovers_after_transient_failure():
    """Test that a later success is returned."""
    operation = AsyncMock(side_effect=[TimeoutError("timeout"), {"id": 1}])
    policy = RetryPolicy(attempts=3, delay=0)

    result = await policy.call("getProject", operation)

    assert result == {"id": 1}
    assert operation.await_count == 2


@pytest.mark.asyncio
async def test_empty_result_is_returned_without_empty_flag():
    """Test that a falsy result is accepted by default."""
    operation = AsyncMock(return_value=None)
    policy = RetryPolicy(attempts=3, delay=0)

    assert await policy.call("getBuild", operation) is None
    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_empty_result_retried_with_empty_flag():
    """Test that a falsy result counts as failure when empty is set."""
    operation = AsyncMock(side_effect=[None, [], {"id": 7}])
    policy = RetryPolicy(attempts=5, delay=0, empty=True)

    assert await policy.call("getBuild", operation) == {"id": 7}
    assert operation.await_count == 3


@pytest.mark.asyncio
async def test_empty_result_exhausts_budget():
    """Test the message when every attempt returns nothing."""
    operation = AsyncMock(return_value=None)
    policy = RetryPolicy(attempts=2, delay=0, empty=True)

    with pytest.raises(RetryError, match="Empty result received"):
        await policy.call("getBuild", operation)

    assert operation.await_count == 2


@pytest.mark.asyncio
async def test_constant_delay_between_attempts(monkeypatch):
    """Test that the same delay is slept between every attempt."""
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr("pipeline_orchestrator.core.retry.asyncio.sleep", fake_sleep)
    operation = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RetryError):
        await RetryPolicy(attempts=4, delay=2500).call("updateStage", operation)

    assert sleeps == [2.5, 2.5, 2.5]




def status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://dev.azure.com/contoso/_apis/projects/Payments")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"{status} response", request=request, response=response)


@pytest.mark.asyncio
async def test_client_error_not_retried():
    """Test that a 401 is raised after a single invocation."""
    operation = AsyncMock(side_effect=status_error(401))

    with pytest.raises(httpx.HTTPStatusError):
        await RetryPolicy(attempts=5, delay=0).call("getProject", operation)

    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_server_error_retried():
    """Test that a 503 is retried until the budget runs out."""
    operation = AsyncMock(side_effect=status_error(503))

    with pytest.raises(RetryError):
        await RetryPolicy(attempts=3, delay=0).call("getProject", operation)

    assert operation.await_count == 3


@pytest.mark.parametrize("error, transient", [
    (status_error(400), False),
    (status_error(403), False),
    (status_error(408), True),
    (status_error(429), True),
    (status_error(500), True),
    (httpx.ConnectError("connection refused"), True),
    (RuntimeError("unexpected status"), True),
])
def test_is_transient(error, transient):
    """Test which failures are retried."""
    assert is_transient(error) is transient
