"""Tests for global configuration module."""

import os
import unittest
from dataclasses import FrozenInstanceError
from unittest.mock import patch

from ymetrika._config import (
    YMETRIKA,
    AuthConfig,
    ClientConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    ThrottleConfig,
    YMetrikaConfig,
)


class TestDefaults(unittest.TestCase):
    """Tests for default configuration values."""

    def setUp(self):
        YMETRIKA.configure(allow_env_override=False)

    def tearDown(self):
        YMETRIKA.reset()

    def test_client_defaults(self):
        """Should target the public API host over HTTPS."""
        self.assertEqual(YMETRIKA.config.client.host, "api-metrika.yandex.ru")
        self.assertEqual(YMETRIKA.config.client.port, 443)
        self.assertEqual(YMETRIKA.config.client.request_timeout, 30)
        self.assertEqual(YMETRIKA.config.client.max_workers, 8)
        self.assertEqual(YMETRIKA.config.client.base_url, "https://api-metrika.yandex.ru:443")

    def test_throttle_defaults(self):
        """Should admit two requests and wait up to a minute."""
        self.assertEqual(YMETRIKA.config.throttle.max_active_clients, 2)
        self.assertEqual(YMETRIKA.config.throttle.max_wait_timeout, 60.0)
        self.assertEqual(YMETRIKA.config.throttle.poll_interval, 0.1)

    def test_auth_defaults(self):
        """Should have no token when nothing is configured."""
        self.assertIsNone(YMETRIKA.config.auth.token)
        self.assertFalse(YMETRIKA.config.auth.has_token())


class TestYMetrikaConfigure(unittest.TestCase):
    """Tests for YMETRIKA.configure() method."""

    def setUp(self):
        YMETRIKA.reset()

    def tearDown(self):
        YMETRIKA.reset()

    def test_configure_throttle_values(self):
        """Should override throttle defaults and keep the rest."""
        YMETRIKA.configure(throttle={"max_active_clients": 5})

        self.assertEqual(YMETRIKA.config.throttle.max_active_clients, 5)
        self.assertEqual(YMETRIKA.config.throttle.poll_interval, 0.1)

    def test_configure_token(self):
        YMETRIKA.configure(auth={"token": "y0_configured"})

        self.assertEqual(YMETRIKA.config.auth.token, "y0_configured")
        self.assertTrue(YMETRIKA.config.auth.has_token())

    def test_configure_unlimited_wait(self):
        """Should accept 'unlimited' as no wait bound."""
        YMETRIKA.configure(throttle={"max_wait_timeout": "unlimited"})

        self.assertIsNone(YMETRIKA.config.throttle.max_wait_timeout)

    def test_configure_none_wait(self):
        YMETRIKA.configure(throttle={"max_wait_timeout": None})

        self.assertIsNone(YMETRIKA.config.throttle.max_wait_timeout)

    def test_configure_ignores_none_for_non_nullable_fields(self):
        YMETRIKA.configure(throttle={"poll_interval": None})

        self.assertEqual(YMETRIKA.config.throttle.poll_interval, 0.1)

    def test_configure_returns_config(self):
        config = YMETRIKA.configure(client={"request_timeout": 10})

        self.assertIsInstance(config, YMetrikaConfig)
        self.assertIs(config, YMETRIKA.config)

    def test_configure_unknown_field_raises(self):
        with self.assertRaises(ValueError) as ctx:
            YMETRIKA.configure(throttle={"max_clients": 3})

        self.assertIn("max_clients", str(ctx.exception))

    def test_configure_invalid_value_raises_validation_error(self):
        with self.assertRaises(ConfigValidationError) as ctx:
            YMETRIKA.configure(throttle={"max_active_clients": 0})

        self.assertEqual(ctx.exception.field, "max_active_clients")
        self.assertEqual(ctx.exception.section, "throttle")
        self.assertIn("[throttle]", str(ctx.exception))

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS": "7", "YMETRIKA_THROTTLE_POLL_INTERVAL": "0.5"})
    def test_configure_takes_precedence_over_env_vars(self):
        YMETRIKA.configure(throttle={"max_active_clients": 3})

        self.assertEqual(YMETRIKA.config.throttle.max_active_clients, 3)
        self.assertEqual(YMETRIKA.config.throttle.poll_interval, 0.5)

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_POLL_INTERVAL": "0.5"})
    def test_configure_without_env_override_ignores_env_vars(self):
        YMETRIKA.configure(allow_env_override=False)

        self.assertEqual(YMETRIKA.config.throttle.poll_interval, 0.1)


class TestEnvVars(unittest.TestCase):
    """Tests for YMETRIKA_* environment variables."""

    def setUp(self):
        YMETRIKA.reset()

    def tearDown(self):
        YMETRIKA.reset()

    @patch.dict(os.environ, {
        "YMETRIKA_AUTH_TOKEN": "y0_from_env",
        "YMETRIKA_CLIENT_HOST": "api-metrika.example.test",
        "YMETRIKA_CLIENT_PORT": "8443",
        "YMETRIKA_CLIENT_REQUEST_TIMEOUT": "12",
        "YMETRIKA_CLIENT_MAX_WORKERS": "4",
        "YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS": "6",
        "YMETRIKA_THROTTLE_MAX_WAIT_TIMEOUT": "15.5",
        "YMETRIKA_THROTTLE_POLL_INTERVAL": "0.25",
    })
    def test_all_env_vars_are_read(self):
        YMETRIKA.reset()
        config = YMETRIKA.config

        self.assertEqual(config.auth.token, "y0_from_env")
        self.assertEqual(config.client.host, "api-metrika.example.test")
        self.assertEqual(config.client.port, 8443)
        self.assertEqual(config.client.request_timeout, 12)
        self.assertEqual(config.client.max_workers, 4)
        self.assertEqual(config.client.base_url, "https://api-metrika.example.test:8443")
        self.assertEqual(config.throttle.max_active_clients, 6)
        self.assertEqual(config.throttle.max_wait_timeout, 15.5)
        self.assertEqual(config.throttle.poll_interval, 0.25)

    @patch.dict(os.environ, {"YMETRIKA_CLIENT_REQUEST_TIMEOUT": "2.5"})
    def test_fractional_request_timeout_from_env(self):
        YMETRIKA.reset()

        self.assertEqual(YMETRIKA.config.client.request_timeout, 2.5)

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_MAX_WAIT_TIMEOUT": "unlimited"})
    def test_unlimited_wait_from_env(self):
        YMETRIKA.reset()

        self.assertIsNone(YMETRIKA.config.throttle.max_wait_timeout)

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS": "many"})
    def test_invalid_env_var_raises(self):
        with self.assertRaises(ConfigEnvVarError) as ctx:
            YMETRIKA.reset()

        self.assertEqual(ctx.exception.env_var, "YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS")
        self.assertEqual(ctx.exception.value, "many")
        self.assertIn("expected int", str(ctx.exception))

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_MAX_ACTIVE_CLIENTS": ""})
    def test_empty_env_var_is_ignored(self):
        YMETRIKA.reset()

        self.assertEqual(YMETRIKA.config.throttle.max_active_clients, 2)

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_POLL_INTERVAL": "0"})
    def test_env_var_failing_validation_raises(self):
        with self.assertRaises(ConfigValidationError):
            YMETRIKA.reset()


class TestValidation(unittest.TestCase):
    """Tests for per-section validate()."""

    def test_client_host_with_scheme_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            ClientConfig(host="https://api-metrika.yandex.ru").validate()

    def test_client_port_out_of_range_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            ClientConfig(port=0).validate()
        with self.assertRaises(ConfigValidationError):
            ClientConfig(port=70000).validate()

    def test_client_non_positive_timeout_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            ClientConfig(request_timeout=0).validate()

    def test_client_non_positive_workers_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            ClientConfig(max_workers=0).validate()

    def test_throttle_non_positive_wait_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            ThrottleConfig(max_wait_timeout=0).validate()

    def test_throttle_none_wait_is_valid(self):
        config = ThrottleConfig(max_wait_timeout=None)

        self.assertIs(config.validate(), config)

    def test_empty_token_is_rejected(self):
        with self.assertRaises(ConfigValidationError):
            AuthConfig(token="   ").validate()


class TestDataclassImmutability(unittest.TestCase):

    def test_sections_are_frozen(self):
        config = ThrottleConfig()

        with self.assertRaises(FrozenInstanceError):
            config.max_active_clients = 10  # type: ignore[misc]

    def test_with_overrides_returns_new_instance(self):
        original = ThrottleConfig()
        updated = original.with_overrides({"max_active_clients": 4})

        self.assertEqual(original.max_active_clients, 2)
        self.assertEqual(updated.max_active_clients, 4)

    def test_with_empty_overrides_returns_same_instance(self):
        original = ClientConfig()

        self.assertIs(original.with_overrides({}), original)


class TestConfigEntry(unittest.TestCase):

    def test_long_token_is_partially_masked(self):
        entry = ConfigEntry("token", "y0_AgAAAAABCDEFGH", "configure")

        self.assertEqual(entry.formatted_value, "y0_A********EFGH")

    def test_short_token_is_fully_masked(self):
        entry = ConfigEntry("token", "short", "env:YMETRIKA_AUTH_TOKEN")

        self.assertEqual(entry.formatted_value, "********")

    def test_none_value(self):
        self.assertEqual(ConfigEntry("max_wait_timeout", None, "configure").formatted_value, "None")

    def test_long_value_is_truncated(self):
        entry = ConfigEntry("host", "a" * 80, "default")

        self.assertEqual(len(entry.formatted_value), 50)
        self.assertTrue(entry.formatted_value.endswith("..."))


class TestExplain(unittest.TestCase):

    def setUp(self):
        YMETRIKA.reset()

    def tearDown(self):
        YMETRIKA.reset()

    def test_explain_data_tracks_sources(self):
        YMETRIKA.configure(throttle={"max_active_clients": 4})

        data = YMETRIKA.config.explain_data()
        throttle_entries = {entry.name: entry for entry in data["throttle"]}

        self.assertEqual(set(data.keys()), {"auth", "client", "throttle"})
        self.assertEqual(throttle_entries["max_active_clients"].source, "configure")
        self.assertEqual(throttle_entries["poll_interval"].source, "default")

    @patch.dict(os.environ, {"YMETRIKA_THROTTLE_POLL_INTERVAL": "0.3"})
    def test_explain_data_reports_env_source(self):
        YMETRIKA.reset()

        entries = {entry.name: entry for entry in YMETRIKA.config.explain_data()["throttle"]}

        self.assertEqual(entries["poll_interval"].source, "env:YMETRIKA_THROTTLE_POLL_INTERVAL")

    def test_explain_writes_every_section_and_masks_token(self):
        YMETRIKA.configure(auth={"token": "y0_AgAAAAABCDEFGH"})
        lines: list[str] = []

        YMETRIKA.explain(output=lines.append)
        text = "\n".join(lines)

        self.assertEqual(lines[0], "YMetrika Configuration:")
        self.assertIn("[auth]", text)
        self.assertIn("[client]", text)
        self.assertIn("[throttle]", text)
        self.assertIn("y0_A********EFGH", text)
        self.assertNotIn("y0_AgAAAAABCDEFGH", text)

    def test_repr(self):
        self.assertTrue(repr(YMETRIKA).startswith("YMETRIKA(config="))
