import json

from anaktesis_config import AnaktesisConfig, ConfigManager, default_config_dir


def test_first_load_writes_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "home")

    config = manager.load()

    assert config == AnaktesisConfig.default()
    saved = json.loads((tmp_path / "home" / "config.json").read_text())
    assert saved["default_size_threshold"] == "100MB"
    assert saved["use_database"] is True
    assert saved["write_webloc"] is False
    assert saved["stats"] == {"total_runs": 0, "total_reclaimed_bytes": 0}


def test_corrupt_config_falls_back_to_defaults(tmp_path):
    manager = ConfigManager(tmp_path)
    manager.config_file.write_text("{ not json")

    assert manager.load() == AnaktesisConfig.default()
    assert manager.config_file.read_text() == "{ not json"


def test_non_object_config_falls_back_to_defaults(tmp_path):
    manager = ConfigManager(tmp_path)
    manager.config_file.write_text("[1, 2, 3]")

    assert manager.load() == AnaktesisConfig.default()


def test_partial_config_keeps_defaults_for_missing_keys(tmp_path):
    manager = ConfigManager(tmp_path)
    manager.config_file.write_text(json.dumps({"default_size_threshold": "2GB", "write_webloc": True}))

    config = manager.load()

    assert config.size_threshold_bytes() == 2 * 1024**3
    assert config.write_webloc is True
    assert config.database_file == "ledger.db"


def test_invalid_threshold_falls_back_with_warning(caplog):
    config = AnaktesisConfig(default_size_threshold="huge")

    assert config.size_threshold_bytes() == 100 * 1024**2
    assert "Invalid default_size_threshold" in caplog.text


def test_save_and_reload_round_trip(tmp_path):
    manager = ConfigManager(tmp_path)
    config = manager.load()
    config.record_run(4096)
    config.record_run(1024)
    manager.save(config)

    reloaded = manager.load()

    assert reloaded.stats == {"total_runs": 2, "total_reclaimed_bytes": 5120}
    assert reloaded.last_run is not None


def test_database_path_is_relative_to_config_dir(tmp_path):
    manager = ConfigManager(tmp_path)
    assert manager.database_path(AnaktesisConfig()) == tmp_path / "ledger.db"
    assert manager.database_path(AnaktesisConfig(database_file=str(tmp_path / "x.db"))) == tmp_path / "x.db"


def test_home_directory_override(monkeypatch, tmp_path):
    monkeypatch.setenv("ANAKTESIS_HOME", str(tmp_path / "custom"))
    assert default_config_dir() == tmp_path / "custom"

    monkeypatch.delenv("ANAKTESIS_HOME")
    assert default_config_dir().name == ".anaktesis"
