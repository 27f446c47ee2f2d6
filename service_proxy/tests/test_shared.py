"""
Tests for shared configuration, logging and error helpers.
"""

import pytest

from shared.config import get_config
from shared.errors import GENERIC_PROXY_ERROR_MESSAGE, IdentityError, ProxyError
from shared.logging import (
    add_correlation_context,
    clear_context,
    redact_secrets,
    set_request_id,
    set_user_context,
)


class TestConfig:

    def test_defaults(self):
        config = get_config()
        assert config.port == 8810
        assert config.upstream_url == "http://localhost:3360"
        assert config.identity_provider == "header"
        assert config.identity_failure_status == 500

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("PROXY_UPSTREAM_URL", "http://gateway.internal:3360")
        monkeypatch.setenv("PROXY_SUPPORTED_VERSIONS", "v1,v2")
        config = get_config()
        assert config.upstream_url == "http://gateway.internal:3360"
        assert config.supported_versions == "v1,v2"

    def test_secret_is_masked(self):
        config = get_config(api_secret="very-secret")
        assert "very-secret" not in repr(config)
        assert config.api_secret.get_secret_value() == "very-secret"

    def test_config_is_frozen(self):
        config = get_config()
        with pytest.raises(Exception):
            config.port = 1


class TestLoggingProcessors:

    def test_secrets_are_redacted(self):
        event = redact_secrets(None, "info", {"event": "x", "api_secret": "s", "Authorization": "Bearer t"})
        assert event == {"event": "x", "api_secret": "***", "Authorization": "***"}

    def test_correlation_context(self):
        set_request_id("req-1")
        set_user_context("user-1")
        try:
            event = add_correlation_context(None, "info", {"event": "x"})
            assert event["request_id"] == "req-1"
            assert event["user_id"] == "user-1"
        finally:
            clear_context()

        assert "request_id" not in add_correlation_context(None, "info", {"event": "x"})


class TestErrors:

    def test_proxy_error_default_content(self):
        error = ProxyError("SOMETHING", "went wrong", status_code=418)
        assert error.status_code == 418
        assert error.to_content() == {"code": "SOMETHING", "message": "went wrong", "details": {}}

    def test_identity_error_hides_reason_on_server_errors(self):
        assert IdentityError("Invalid token").to_content() == {"message": GENERIC_PROXY_ERROR_MESSAGE}
        assert IdentityError("Invalid token", status_code=403).to_content() == {"message": "Invalid token"}
