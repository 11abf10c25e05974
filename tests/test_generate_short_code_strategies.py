"""
Tests for short code generation strategies.
"""
import pytest

from shortlink_app.services.short_code_strategies import (
    BASE62_ALPHABET,
    RandomShortCodeStrategy,
)


class TestRandomStrategy:
    """Test random CSPRNG strategy"""

    def test_generates_correct_length(self):
        """Default codes are six characters"""
        strategy = RandomShortCodeStrategy()

        code = strategy.generate()

        assert len(code) == 6

    def test_length_override(self):
        strategy = RandomShortCodeStrategy(length=6)

        assert len(strategy.generate(length=10)) == 10

    def test_uses_base62_alphabet(self):
        """Every character comes from [0-9a-zA-Z]"""
        strategy = RandomShortCodeStrategy()

        for _ in range(200):
            code = strategy.generate()
            assert all(char in BASE62_ALPHABET for char in code)

    def test_codes_are_not_sequential(self):
        """1000 draws from 62^6 codes should practically never repeat"""
        strategy = RandomShortCodeStrategy()

        codes = {strategy.generate() for _ in range(1000)}

        assert len(codes) == 1000

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            RandomShortCodeStrategy(length=0)


class TestGenerateUnique:
    """Test the existence-check loop"""

    def test_returns_first_free_code(self):
        strategy = RandomShortCodeStrategy()
        seen = []

        def exists(code):
            seen.append(code)
            return False

        code = strategy.generate_unique(exists)

        assert seen == [code]

    def test_retries_past_taken_codes(self):
        """Taken codes are skipped until a free one comes up"""
        strategy = RandomShortCodeStrategy()
        calls = {"count": 0}

        def exists(code):
            calls["count"] += 1
            return calls["count"] <= 3

        code = strategy.generate_unique(exists)

        assert calls["count"] == 4
        assert len(code) == 6

    def test_keeps_going_past_retry_budget(self):
        """The retry budget only triggers a warning, it is not a hard limit"""
        strategy = RandomShortCodeStrategy(retry_budget=5)
        calls = {"count": 0}

        def exists(code):
            calls["count"] += 1
            return calls["count"] <= 12

        code = strategy.generate_unique(exists)

        assert calls["count"] == 13
        assert code

    def test_existence_check_errors_propagate(self):
        strategy = RandomShortCodeStrategy()

        def exists(code):
            raise RuntimeError("store down")

        with pytest.raises(RuntimeError):
            strategy.generate_unique(exists)
