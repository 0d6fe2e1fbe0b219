import pytest

from utils import app_config


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("EXPENSE_CADENCE_CONFIG_DIR", str(tmp_path / "cfg"))
    return tmp_path / "cfg"


def test_missing_config_is_empty():
    assert app_config.load_config() == {}
    assert app_config.get_db_folder() is None
    assert app_config.get_log_level() == "INFO"


def test_db_folder_round_trip(config_home):
    app_config.set_db_folder("/data/finance")
    assert app_config.get_db_folder() == "/data/finance"
    assert (config_home / "config.json").exists()
    assert not (config_home / "config.tmp").exists()

    app_config.set_db_folder(None)
    assert app_config.get_db_folder() is None


def test_corrupt_config_is_ignored(config_home):
    config_home.mkdir(parents=True)
    (config_home / "config.json").write_text("{not json", encoding="utf-8")
    assert app_config.load_config() == {}


def test_log_level_is_upper_cased():
    app_config.save_config({"log_level": "debug"})
    assert app_config.get_log_level() == "DEBUG"
