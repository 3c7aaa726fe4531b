import pytest

from src.platform.exception.exceptions import NotFoundError, TransientError
from src.platform.exception.transient_retry import backoff_delay, retry_transient


pytestmark = pytest.mark.unit


class TestBackoffDelay:
    def test_grows_exponentially_within_jitter(self):
        first = backoff_delay(attempt=1, base_delay=0.1)
        third = backoff_delay(attempt=3, base_delay=0.1)

        assert 0.1 <= first <= 0.15
        assert 0.4 <= third <= 0.6

    def test_is_capped(self):
        assert backoff_delay(attempt=20, base_delay=1.0, max_delay=2.0) <= 3.0


class TestRetryTransient:
    async def test_retries_until_success(self):
        calls = 0

        @retry_transient(attempts=3, base_delay=0)
        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise TransientError('store busy')
            return 'ok'

        assert await flaky() == 'ok'
        assert calls == 3

    async def test_gives_up_after_max_attempts(self):
        calls = 0

        @retry_transient(attempts=2, base_delay=0)
        async def always_busy() -> None:
            nonlocal calls
            calls += 1
            raise TransientError('store busy')

        with pytest.raises(TransientError):
            await always_busy()
        assert calls == 2

    async def test_other_errors_are_not_retried(self):
        calls = 0

        @retry_transient
        async def missing() -> None:
            nonlocal calls
            calls += 1
            raise NotFoundError('Lease not found')

        with pytest.raises(NotFoundError):
            await missing()
        assert calls == 1

    def test_preserves_function_metadata(self):
        @retry_transient
        async def create_lease() -> None:
            """Create a lease"""

        assert create_lease.__name__ == 'create_lease'
        assert create_lease.__doc__ == 'Create a lease'
