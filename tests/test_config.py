import os
from unittest.mock import patch

from clipvault.config import _parse_max_history


class TestParseMaxHistory:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("CLIPVAULT_MAX_HISTORY", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_max_history() == 100

    def test_valid_value(self):
        with patch.dict("os.environ", {"CLIPVAULT_MAX_HISTORY": "250"}):
            assert _parse_max_history() == 250

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"CLIPVAULT_MAX_HISTORY": "0"}):
            assert _parse_max_history() == 1

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"CLIPVAULT_MAX_HISTORY": "999999"}):
            assert _parse_max_history() == 10_000

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"CLIPVAULT_MAX_HISTORY": "lots"}):
            assert _parse_max_history() == 100
