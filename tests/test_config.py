import pytest

from nvmediscovery.config import AppConfig, load_app_config
from nvmediscovery.logsetup import LoggingConfig


def test_valid_config():
    cfg = AppConfig(
        cores=[0],
        logging=LoggingConfig(level="debug"),
        client_config_dir="/etc/discovery-client/discovery.d/",
        internal_dir="/etc/discovery-client/internal/",
    )
    assert cfg.verify() is None


def test_identical_internal_and_client_directory():
    cfg = AppConfig(
        cores=[0],
        logging=LoggingConfig(level="debug"),
        client_config_dir="/etc/discovery-client/discovery.d/",
        internal_dir="/etc/discovery-client/discovery.d/",
    )
    with pytest.raises(ValueError) as info:
        cfg.verify()
    assert str(info.value) == (
        'Internal dir identical to ClientConfigDir: "/etc/discovery-client/discovery.d/"'
    )


def test_illegal_log_level():
    cfg = AppConfig(
        cores=[0],
        logging=LoggingConfig(level="wrong_level"),
        client_config_dir="/etc/discovery-client/discovery.d/",
        internal_dir="/etc/discovery-client/internal/",
    )
    with pytest.raises(ValueError) as info:
        cfg.verify()
    assert str(info.value) == (
        "invalid logging.level parameter provided. supported levels: "
        "[debug info warn warning error fatal], provided: wrong_level"
    )


def test_load_from_file(tmp_path):
    path = tmp_path / "dc.yaml"
    path.write_text(
        "clientConfigDir: /a\ninternalDir: /b\nlogging:\n  level: info\n"
        "reconnectInterval: 5s\nautoDetectEntries:\n  discoveryServicePort: 9000\n"
    )
    cfg = load_app_config(str(path))
    assert cfg.client_config_dir == "/a"
    assert cfg.internal_dir == "/b"
    assert cfg.logging.level == "info"
    assert cfg.reconnect_interval == 5.0
    assert cfg.auto_detect_entries.discovery_service_port == 9000
    assert cfg.kato == 10


def test_overrides_apply_and_verify(tmp_path):
    path = tmp_path / "dc.yaml"
    path.write_text("clientConfigDir: /a\ninternalDir: /b\n")
    with pytest.raises(ValueError):
        load_app_config(str(path), {"internalDir": "/a"})