from pathlib import Path

import pytest
from pydantic import ValidationError

from photodrop.config import MiB, Settings

ENV_VARS = ("PORT", "HOST", "UPLOAD_DIR", "LOG_LEVEL", "MAX_FILE_SIZE", "PHOTODROP_CONFIG")


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()
    assert settings.port == 3001
    assert settings.upload_dir == Path("uploads")
    assert settings.max_file_size == 5 * MiB
    assert settings.max_file_size_label == "5 MB"
    assert settings.allowed_extensions == [".jpg", ".jpeg", ".png", ".gif", ".webp"]
    assert settings.verify_content is False


def test_port_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert Settings().port == 8080


def test_load_from_dotenv(tmp_path):
    (tmp_path / ".env").write_text("LOG_LEVEL=DEBUG\nUPLOAD_DIR=media\n", encoding="utf-8")
    settings = Settings()
    assert settings.log_level == "DEBUG"
    assert settings.upload_dir == Path("media")


def test_env_overrides_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("LOG_LEVEL=DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    assert Settings().log_level == "WARNING"


def test_yaml_config_file(tmp_path, monkeypatch):
    cfg = tmp_path / "photodrop.yml"
    cfg.write_text(
        "port: 4000\nmax_file_size: 1048576\nallowed_extensions: [PNG, .jpg]\nunknown_key: 1\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PHOTODROP_CONFIG", str(cfg))
    settings = Settings()
    assert settings.port == 4000
    assert settings.max_file_size_label == "1 MB"
    assert settings.allowed_extensions == [".png", ".jpg"]


def test_env_overrides_yaml(tmp_path, monkeypatch):
    (tmp_path / "config.yml").write_text("port: 4000\n", encoding="utf-8")
    monkeypatch.setenv("PORT", "5000")
    assert Settings().port == 5000


def test_rejects_non_positive_limit():
    with pytest.raises(ValidationError):
        Settings(max_file_size=0)
