"""Unit tests for connection retry with exponential backoff."""

import time

import pytest

from sql_backup.resilience.retry import RetryConfig, retry_async


class TestRetryConfig:
    """Test suite for RetryConfig class."""

    def test_defaults_single_attempt(self) -> None:
        """Test that the default policy makes exactly one attempt."""
        config = RetryConfig()

        assert config.max_attempts == 1
        assert config.initial_delay == 2.0
        assert config.backoff_factor == 2.0
        assert config.max_delay == 60.0

    def test_invalid_max_attempts(self) -> None:
        """Test that max_attempts must be >= 1."""
        with pytest.raises(ValueError, match="max_attempts must be >= 1"):
            RetryConfig(max_attempts=0)

    def test_invalid_initial_delay(self) -> None:
        """Test that initial_delay must be >= 0."""
        with pytest.raises(ValueError, match="initial_delay must be >= 0"):
            RetryConfig(initial_delay=-1.0)

    def test_invalid_backoff_factor(self) -> None:
        """Test that backoff_factor must be >= 1.0."""
        with pytest.raises(ValueError, match="backoff_factor must be >= 1.0"):
            RetryConfig(backoff_factor=0.5)

    def test_invalid_max_delay(self) -> None:
        """Test that max_delay must be >= initial_delay."""
        with pytest.raises(ValueError, match="max_delay must be >= initial_delay"):
            RetryConfig(initial_delay=10.0, max_delay=5.0)

    def test_calculate_delay_exponential_backoff(self) -> None:
        """Test exponential backoff delay calculation."""
        config = RetryConfig(initial_delay=1.0, backoff_factor=2.0, max_delay=10.0)

        assert config.calculate_delay(0) == 1.0
        assert config.calculate_delay(1) == 2.0
        assert config.calculate_delay(2) == 4.0
        assert config.calculate_delay(3) == 8.0
        assert config.calculate_delay(4) == 10.0  # 16.0 capped at 10.0

    def test_calculate_delay_with_factor_one(self) -> None:
        """Test constant delay when backoff_factor is 1.0."""
        config = RetryConfig(initial_delay=5.0, backoff_factor=1.0, max_delay=10.0)

        assert config.calculate_delay(0) == 5.0
        assert config.calculate_delay(10) == 5.0


class TestRetryAsync:
    """Test suite for retry_async."""

    @pytest.mark.asyncio
    async def test_succeeds_on_first_attempt(self) -> None:
        """Test that a successful call is not repeated."""
        call_count = 0

        async def connect() -> str:
            nonlocal call_count
            call_count += 1
            return "connection"

        result = await retry_async(connect, RetryConfig(max_attempts=3))

        assert result == "connection"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_succeeds_after_retries(self) -> None:
        """Test that transient failures are retried."""
        call_count = 0

        async def connect(host: str, *, port: int) -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionRefusedError("refused")
            return f"{host}:{port}"

        result = await retry_async(
            connect,
            RetryConfig(max_attempts=3, initial_delay=0.01),
            "db.internal",
            port=3306,
        )

        assert result == "db.internal:3306"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_reraises_last_error(self) -> None:
        """Test that the final error propagates unchanged."""
        call_count = 0

        async def connect() -> None:
            nonlocal call_count
            call_count += 1
            raise ConnectionRefusedError(f"refused #{call_count}")

        with pytest.raises(ConnectionRefusedError, match="refused #2"):
            await retry_async(connect, RetryConfig(max_attempts=2, initial_delay=0.01))

        assert call_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_no_retry(self) -> None:
        """Test that max_attempts=1 means no retries."""
        call_count = 0

        async def connect() -> None:
            nonlocal call_count
            call_count += 1
            raise OSError("unreachable")

        with pytest.raises(OSError, match="unreachable"):
            await retry_async(connect, RetryConfig(max_attempts=1))

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_only_retries_specified_exceptions(self) -> None:
        """Test that non-retriable errors propagate immediately."""
        call_count = 0

        async def connect() -> None:
            nonlocal call_count
            call_count += 1
            raise PermissionError("access denied")

        config = RetryConfig(
            max_attempts=3,
            initial_delay=0.01,
            retriable_exceptions=(ConnectionError,),
        )
        with pytest.raises(PermissionError):
            await retry_async(connect, config)

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_delay_between_retries(self) -> None:
        """Test that the backoff delay is actually awaited."""
        call_times: list[float] = []

        async def connect() -> None:
            call_times.append(time.monotonic())
            if len(call_times) < 2:
                raise ConnectionError("retry me")

        await retry_async(connect, RetryConfig(max_attempts=2, initial_delay=0.05))

        assert len(call_times) == 2
        assert call_times[1] - call_times[0] >= 0.04
