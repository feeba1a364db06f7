"""Tests for client options, loading and factories."""

import pytest

from synse_client.api import (
    ConfigurationError,
    HTTPClient,
    WebSocketClient,
    create_client,
    new_http_client,
)
from synse_client.api.tls import create_ssl_context
from synse_client.config import (
    ClientOptions,
    TLSOptions,
    build_options,
    get_options,
    load_options,
    reload_options,
)
from synse_client.config import loader
from synse_client.models import Transport


@pytest.fixture
def reset_loaded_options(monkeypatch):
    monkeypatch.setattr(loader, "_options", None)


class TestBuildOptions:
    """Tests for validating options given by the caller."""

    def test_defaults(self):
        options = build_options({"address": "localhost:5000"})

        assert options.timeout == 2.0
        assert options.retry.count == 3
        assert options.tls.enabled is False
        assert options.websocket.stream_buffer_size == 128
        assert options.log_format == "text"

    def test_missing_address(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options({})

        assert "address" in str(exc_info.value)

    def test_blank_address(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options({"address": "   "})

        assert "no address is specified" in str(exc_info.value)

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            build_options({"address": "localhost:5000", "timeout": 0})

    def test_retry_bounds(self):
        with pytest.raises(ConfigurationError):
            build_options({"address": "x", "retry": {"wait_time": 2.0, "max_wait_time": 1.0}})

    def test_overrides_apply_to_existing_options(self):
        options = ClientOptions(address="a:5000")

        updated = build_options(options, address="b:5000")

        assert updated.address == "b:5000"
        assert options.address == "a:5000"

    def test_existing_options_returned_unchanged(self):
        options = ClientOptions(address="a:5000")

        assert build_options(options) is options

    def test_options_are_immutable(self):
        options = ClientOptions(address="a:5000")

        with pytest.raises(Exception):
            options.address = "b:5000"

    def test_log_level_normalized(self):
        assert build_options({"address": "x", "log_level": "warn"}).log_level == "WARNING"


class TestTLSOptions:
    """Tests for TLS validation and context creation."""

    def test_enabled_without_certificates(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options({"address": "x", "tls": {"enabled": True}})

        assert "no certificates are specified" in str(exc_info.value)

    def test_enabled_with_only_one_file(self, tmp_path):
        cert = tmp_path / "client.crt"
        cert.write_text("cert")

        with pytest.raises(ConfigurationError):
            build_options({"address": "x", "tls": {"enabled": True, "cert_file": str(cert)}})

    def test_missing_certificate_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options(
                {
                    "address": "x",
                    "tls": {
                        "enabled": True,
                        "cert_file": str(tmp_path / "absent.crt"),
                        "key_file": str(tmp_path / "absent.key"),
                    },
                }
            )

        assert "not found" in str(exc_info.value)

    def test_unloadable_certificate(self, tmp_path):
        cert = tmp_path / "client.crt"
        key = tmp_path / "client.key"
        cert.write_text("not a certificate")
        key.write_text("not a key")
        tls = TLSOptions(enabled=True, cert_file=str(cert), key_file=str(key))

        with pytest.raises(ConfigurationError):
            create_ssl_context(tls)

    def test_disabled_has_no_context(self):
        assert create_ssl_context(TLSOptions()) is None


class TestLoadOptions:
    """Tests for environment and YAML loading."""

    def test_environment_variables(self, monkeypatch, reset_loaded_options):
        monkeypatch.setenv("SYNSE_ADDRESS", "synse:5000")
        monkeypatch.setenv("SYNSE_TIMEOUT", "5")
        monkeypatch.setenv("SYNSE_RETRY__COUNT", "1")
        monkeypatch.setenv("SYNSE_WEBSOCKET__STREAM_BUFFER_SIZE", "16")

        options = load_options()

        assert options.address == "synse:5000"
        assert options.timeout == 5.0
        assert options.retry.count == 1
        assert options.websocket.stream_buffer_size == 16
        assert get_options() is options

    def test_yaml_file(self, tmp_path, monkeypatch, reset_loaded_options):
        config = tmp_path / "synse.yaml"
        config.write_text("address: yaml-host:5000\ntimeout: 3\nretry:\n  count: 5\n")
        monkeypatch.delenv("SYNSE_CONFIG_PATH", raising=False)

        options = load_options(str(config))

        assert options.address == "yaml-host:5000"
        assert options.timeout == 3.0
        assert options.retry.count == 5

    def test_environment_overrides_yaml(self, tmp_path, monkeypatch, reset_loaded_options):
        config = tmp_path / "synse.yaml"
        config.write_text("address: yaml-host:5000\n")
        monkeypatch.setenv("SYNSE_CONFIG_PATH", str(config))
        monkeypatch.setenv("SYNSE_ADDRESS", "env-host:5000")

        assert load_options().address == "env-host:5000"

    def test_missing_yaml_file(self, tmp_path, monkeypatch, reset_loaded_options):
        monkeypatch.setenv("SYNSE_CONFIG_PATH", str(tmp_path / "absent.yaml"))

        with pytest.raises(ConfigurationError) as exc_info:
            load_options()

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path, monkeypatch, reset_loaded_options):
        config = tmp_path / "synse.yaml"
        config.write_text("address: [unclosed\n")
        monkeypatch.setenv("SYNSE_CONFIG_PATH", str(config))

        with pytest.raises(ConfigurationError):
            load_options()

    def test_get_options_before_load(self, reset_loaded_options):
        with pytest.raises(ConfigurationError):
            get_options()

    def test_reload_picks_up_changes(self, monkeypatch, reset_loaded_options):
        monkeypatch.setenv("SYNSE_ADDRESS", "first:5000")
        load_options()
        monkeypatch.setenv("SYNSE_ADDRESS", "second:5000")

        assert reload_options().address == "second:5000"


class TestFactories:
    """Tests for building clients from options."""

    def test_create_client_defaults_to_http(self):
        client = create_client({"address": "localhost:5000"})

        assert isinstance(client, HTTPClient)

    def test_create_client_websocket(self):
        client = create_client({"address": "localhost:5000"}, Transport.WEBSOCKET)

        assert isinstance(client, WebSocketClient)

    def test_create_client_accepts_transport_name(self):
        assert isinstance(create_client({"address": "x"}, "websocket"), WebSocketClient)

    def test_unknown_transport(self):
        with pytest.raises(ConfigurationError):
            create_client({"address": "x"}, "carrier-pigeon")

    def test_invalid_options_fail_before_io(self):
        with pytest.raises(ConfigurationError):
            new_http_client({"address": ""})

    def test_https_when_tls_enabled(self, monkeypatch, tmp_path):
        cert = tmp_path / "client.crt"
        key = tmp_path / "client.key"
        cert.write_text("cert")
        key.write_text("key")
        monkeypatch.setattr("synse_client.api.http.create_ssl_context", lambda tls: None)

        client = new_http_client(
            {"address": "x:5000", "tls": {"enabled": True, "cert_file": str(cert), "key_file": str(key)}}
        )

        assert client.base_url == "https://x:5000"
