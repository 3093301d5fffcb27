"""
Tests for core helper functions.
"""

import pytest

from core.helpers import backoff_delay


class TestBackoffDelay:
    @pytest.mark.parametrize("attempt, base_delay", [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0)])
    def test_doubles_with_jitter(self, attempt, base_delay):
        delay = backoff_delay(attempt, base=1.0, max_delay=60.0)

        assert base_delay <= delay <= base_delay * 1.25

    def test_capped_before_jitter(self):
        assert 5.0 <= backoff_delay(10, base=1.0, max_delay=5.0) <= 6.25

    def test_zero_base(self):
        assert backoff_delay(4, base=0, max_delay=0) == 0
