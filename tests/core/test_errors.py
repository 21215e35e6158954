from intelligent_cache.core.errors import (
    CacheError,
    CacheWarmupError,
    CapacityExceededError,
    InvalidPatternError,
    InvalidTTLError,
    KeyNotFoundError,
)


class TestExceptionHierarchy:
    def test_all_are_cache_errors(self):
        for exc in (
            KeyNotFoundError,
            InvalidPatternError,
            CapacityExceededError,
            InvalidTTLError,
            CacheWarmupError,
        ):
            assert issubclass(exc, CacheError)

    def test_key_not_found_is_key_error(self):
        assert issubclass(KeyNotFoundError, KeyError)

    def test_invalid_inputs_are_value_errors(self):
        assert issubclass(InvalidPatternError, ValueError)
        assert issubclass(InvalidTTLError, ValueError)

    def test_capacity_is_not_value_error(self):
        assert not issubclass(CapacityExceededError, ValueError)
