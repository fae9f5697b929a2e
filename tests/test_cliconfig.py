import pytest

from kuberay.cliconfig import (
    CONFIG_FILE_NAME,
    DEFAULT_RPC_ADDRESS,
    DEFAULT_RPC_PORT,
    ConfigStore,
    FlagError,
    SilentError,
    UnsupportedKeyError,
    default_config_path,
    default_endpoint,
    validate_key,
)


def test_default_endpoint_joins_address_and_port():
    assert default_endpoint() == f"{DEFAULT_RPC_ADDRESS}:{DEFAULT_RPC_PORT}"
    assert default_endpoint() == "127.0.0.1:8887"


def test_default_config_path_name():
    assert default_config_path().name == CONFIG_FILE_NAME


def test_validate_key_rejects_unknown():
    with pytest.raises(UnsupportedKeyError, match="key foo is not supported"):
        validate_key("foo")


def test_unsupported_key_error_carries_key():
    err = UnsupportedKeyError("bar")
    assert err.key == "bar"
    assert "[endpoint]" in str(err)


def test_get_missing_file_gives_default(tmp_path):
    store = ConfigStore(tmp_path / "cfg.yaml", environ={})
    assert store.get("endpoint") == default_endpoint()


def test_set_round_trips_through_file(tmp_path):
    path = tmp_path / "cfg.yaml"
    ConfigStore(path, environ={}).set("endpoint", "10.1.2.3:9000")
    assert path.exists()
    assert ConfigStore(path, environ={}).get("endpoint") == "10.1.2.3:9000"


def test_reset_restores_default(tmp_path):
    path = tmp_path / "cfg.yaml"
    store = ConfigStore(path, environ={})
    store.set("endpoint", "10.1.2.3:9000")
    store.reset()
    assert store.get("endpoint") == default_endpoint()
    assert ConfigStore(path, environ={}).get("endpoint") == default_endpoint()


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "cfg.yaml"
    ConfigStore(path, environ={}).set("endpoint", "10.1.2.3:9000")
    store = ConfigStore(path, environ={"ENDPOINT": "192.168.0.1:1"})
    assert store.get("endpoint") == "192.168.0.1:1"


def test_set_unsupported_key_does_not_write(tmp_path):
    path = tmp_path / "cfg.yaml"
    with pytest.raises(UnsupportedKeyError):
        ConfigStore(path, environ={}).set("colour", "red")
    assert not path.exists()


def test_get_unsupported_key_raises(tmp_path):
    with pytest.raises(UnsupportedKeyError):
        ConfigStore(tmp_path / "cfg.yaml", environ={}).get("colour")


def test_safe_write_only_once(tmp_path):
    path = tmp_path / "cfg.yaml"
    store = ConfigStore(path, environ={})
    assert store.safe_write() is True
    assert store.safe_write() is False
    assert default_endpoint() in path.read_text(encoding="utf-8")


def test_malformed_file_falls_back_to_default(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("endpoint: [unclosed", encoding="utf-8")
    assert ConfigStore(path, environ={}).get("endpoint") == default_endpoint()


def test_write_failure_raises_oserror(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = ConfigStore(blocker / "cfg.yaml", environ={})
    with pytest.raises(OSError, match="Not able to write to config file"):
        store.set("endpoint", "10.1.2.3:9000")


def test_flag_error_wraps_cause():
    cause = ValueError("bad flag")
    err = FlagError(cause)
    assert str(err) == "bad flag"
    assert err.__cause__ is cause
    assert err.err is cause


def test_silent_error_message():
    assert str(SilentError()) == "SilentError"