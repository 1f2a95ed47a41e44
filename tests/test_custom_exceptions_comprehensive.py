"""Comprehensive tests for custom_exceptions module. """

import pytest

from mempool_sniper.utils.custom_exceptions import (
    AlreadyRunningError,
    ConfigurationError,
    ConnectionError,
    EstimationError,
    MempoolSniperError,
    SubscriptionError,
    ValidationError,
)


class TestMempoolSniperError:
    """Test base exception class. """

    def test_basic_error(self):
        error = MempoolSniperError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}
        assert error.cause is None

    def test_default_message(self):
        assert str(MempoolSniperError()) == "Mempool Sniper error"

    def test_error_with_details(self):
        error = MempoolSniperError("Error with details", details={"key": "value", "count": 42})
        assert error.details == {"key": "value", "count": 42}
        assert "Details:" in str(error)
        assert "count" in str(error)

    def test_details_are_copied(self):
        details = {"a": 1}
        error = MempoolSniperError("x", details=details)
        details["b"] = 2
        assert error.details == {"a": 1}

    def test_to_dict(self):
        cause = RuntimeError("root cause")
        error = MempoolSniperError("Test", details={"field": "test"}, cause=cause)

        result = error.to_dict()

        assert result["error_type"] == "MempoolSniperError"
        assert result["message"] == "Test"
        assert result["details"] == {"field": "test"}
        assert "root cause" in result["cause"]


class TestConfigurationError:
    def test_basic_config_error(self):
        assert "Configuration error" in str(ConfigurationError())

    def test_config_error_full(self):
        cause = KeyError("missing")
        error = ConfigurationError(
            "Config failed",
            key="websocket_url",
            value="http://node",
            details={"extra": "info"},
            cause=cause,
        )
        assert error.details == {
            "extra": "info",
            "key": "websocket_url",
            "value": "http://node",
        }
        assert error.cause is cause


class TestValidationError:
    def test_fields_recorded(self):
        error = ValidationError(
            "bad", field="chain_id", value=999, expected_type="supported chain id"
        )
        assert error.details["field"] == "chain_id"
        assert error.details["value"] == 999
        assert error.details["expected_type"] == "supported chain id"
        assert isinstance(error, MempoolSniperError)


class TestConnectionErrors:
    def test_connection_error_details(self):
        error = ConnectionError("RPC down", endpoint="wss://node", chain_id=1, retry_count=3)
        assert error.details == {"endpoint": "wss://node", "chain_id": 1, "retry_count": 3}
        assert "Connection failed" in str(ConnectionError())

    def test_subscription_error_is_connection_error(self):
        error = SubscriptionError(
            "stream closed", subscription="newHeads", endpoint="wss://node"
        )
        assert isinstance(error, ConnectionError)
        assert error.details["subscription"] == "newHeads"
        assert error.details["endpoint"] == "wss://node"

    def test_shadowed_builtin_is_not_caught_by_builtin_handler(self):
        with pytest.raises(MempoolSniperError):
            try:
                raise SubscriptionError()
            except OSError:
                pytest.fail("package ConnectionError must not subclass OSError")


class TestComponentErrors:
    def test_already_running(self):
        error = AlreadyRunningError(component="event_source")
        assert error.details["component"] == "event_source"
        assert "already running" in str(error)

    def test_estimation_error(self):
        cause = ZeroDivisionError("x")
        error = EstimationError("model failed", tx_hash="0xab", method="swapIt", cause=cause)
        assert error.details == {"tx_hash": "0xab", "method": "swapIt"}
        assert error.to_dict()["error_type"] == "EstimationError"
