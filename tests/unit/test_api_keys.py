"""Tests for API key helpers."""

import pytest

from metered_api.auth.api_keys import extract_api_key, generate_api_key, mask_api_key


class TestExtractApiKey:
    """Tests for credential extraction from headers."""

    def test_bearer_token(self):
        assert extract_api_key("Bearer clapi_abc", None) == "clapi_abc"

    def test_bearer_is_case_insensitive(self):
        assert extract_api_key("bearer clapi_abc", None) == "clapi_abc"

    def test_raw_authorization_value(self):
        assert extract_api_key("clapi_abc", None) == "clapi_abc"

    def test_x_api_key_header(self):
        assert extract_api_key(None, "clapi_xyz") == "clapi_xyz"

    def test_authorization_wins(self):
        assert extract_api_key("Bearer clapi_abc", "clapi_xyz") == "clapi_abc"

    def test_empty_bearer_falls_back_to_x_api_key(self):
        assert extract_api_key("Bearer ", "clapi_xyz") == "clapi_xyz"

    @pytest.mark.parametrize(
        ("authorization", "x_api_key"),
        [(None, None), ("", ""), ("   ", None), (None, "  "), ("Bearer   ", None)],
    )
    def test_absent_credentials(self, authorization, x_api_key):
        assert extract_api_key(authorization, x_api_key) is None


class TestGenerateApiKey:
    """Tests for key generation."""

    def test_prefix(self):
        assert generate_api_key("clapi_").startswith("clapi_")

    def test_keys_are_unique(self):
        keys = {generate_api_key("clapi_") for _ in range(100)}
        assert len(keys) == 100

    def test_key_length(self):
        # 32 random bytes, URL-safe base64 without padding
        assert len(generate_api_key("clapi_")) == len("clapi_") + 43


class TestMaskApiKey:
    """Tests for log-safe key rendering."""

    def test_shows_only_prefix_and_digest(self):
        key = "clapi_qrstuvwxyzQRSTUVWX"
        masked = mask_api_key(key, "clapi_")

        assert masked.startswith("clapi_...")
        assert len(masked) == len("clapi_...") + 8
        secret = key.removeprefix("clapi_")
        assert not any(secret[i : i + 4] in masked for i in range(len(secret) - 3))

    def test_same_key_same_output(self):
        assert mask_api_key("clapi_same", "clapi_") == mask_api_key("clapi_same", "clapi_")

    def test_different_keys_differ(self):
        assert mask_api_key("clapi_one", "clapi_") != mask_api_key("clapi_two", "clapi_")

    def test_foreign_prefix_not_echoed(self):
        masked = mask_api_key("sk_live_secretvalue", "clapi_")

        assert masked.startswith("...")
        assert "sk_live" not in masked
