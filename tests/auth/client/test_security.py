import re

import pytest

from authlogic.client.models.errors import StateValidationError
from authlogic.client.services.security import (
    generate_random_string,
    is_secure_endpoint,
    validate_state,
)


class TestGenerateRandomString:
    def test_charset_and_length(self) -> None:
        # Act
        values = [generate_random_string(32) for _ in range(1000)]

        # Assert
        for value in values:
            assert re.fullmatch(r"[A-Za-z0-9]{32}", value)
        assert len(set(values)) == 1000

    @pytest.mark.parametrize("length", [1, 8, 43, 128])
    def test_exact_length(self, length: int) -> None:
        assert len(generate_random_string(length)) == length

    def test_rejects_non_positive_length(self) -> None:
        with pytest.raises(ValueError):
            generate_random_string(0)


class TestValidateState:
    def test_matching_state_passes(self) -> None:
        validate_state("abc123", "abc123")

    def test_mismatch_raises(self) -> None:
        with pytest.raises(StateValidationError, match="mismatch"):
            validate_state("abc123", "abc124")


class TestIsSecureEndpoint:
    @pytest.mark.parametrize(
        "uri,expected",
        [
            ("https://auth.example.com", True),
            ("http://localhost:3000/callback", True),
            ("http://127.0.0.1:8080", True),
            ("http://auth.example.com", False),
            ("ftp://auth.example.com", False),
        ],
    )
    def test_scheme_rules(self, uri: str, expected: bool) -> None:
        assert is_secure_endpoint(uri) is expected
