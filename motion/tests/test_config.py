"""Tests for configuration loading and saving."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from motion.daemon.config import Config, StorageConfig


def test_defaults():
    config = Config()

    assert config.endpoint.base_url == "http://127.0.0.1:11434"
    assert config.endpoint.model == "llama3"
    assert config.prompt.json_output is False
    assert config.notifications.enabled is False
    assert config.storage.max_depth == 10


def test_cloud_root_layout(tmp_path):
    storage = StorageConfig(container_identifier="iCloud.de.example.app", cloud_base=tmp_path)

    assert storage.container_path() == tmp_path / "iCloud~de~example~app"
    assert storage.watched_root() == tmp_path / "iCloud~de~example~app" / "Documents"


def test_directory_mode_root(tmp_path):
    storage = StorageConfig(mode="directory", local_root=tmp_path)
    assert storage.watched_root() == tmp_path


def test_save_and_load_roundtrip(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = Config()
    config.prompt.context = "I live by the sea"
    config.endpoint.model = "qwen2.5:3b"
    config.save(path)

    loaded = Config.load(path)
    assert loaded.prompt.context == "I live by the sea"
    assert loaded.endpoint.model == "qwen2.5:3b"
    assert loaded.storage.cloud_base == Path("~/Library/Mobile Documents")


def test_load_without_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert Config.load() == Config()


def test_load_finds_local_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / "motion.yaml").write_text("endpoint:\n  model: mistral\n", encoding="utf-8")

    assert Config.load().endpoint.model == "mistral"


def test_with_value_coerces():
    config = Config().with_value("notifications.enabled", "true")
    assert config.notifications.enabled is True

    config = config.with_value("storage.poll_interval_s", "5")
    assert config.storage.poll_interval_s == 5.0


def test_with_value_unknown_key():
    with pytest.raises(KeyError):
        Config().with_value("endpoint.password", "x")
    with pytest.raises(KeyError):
        Config().with_value("nothing", "x")


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        StorageConfig(poll_interval_s=0)
    with pytest.raises(ValidationError):
        Config().with_value("storage.mode", "ftp")


def test_local_root_selects_directory_mode(tmp_path):
    storage = StorageConfig(local_root=tmp_path)

    assert storage.mode == "directory"
    assert storage.walks_directory
    assert storage.watched_root() == tmp_path
