from pathlib import Path

import pytest
from pydantic import ValidationError

from vaultgraph import config as config_module
from vaultgraph.config import GraphSettings, TraversalStrategy


@pytest.fixture(autouse=True)
def restore_settings_cache():
    """
    Ensure the settings cache is cleared between tests.
    """
    config_module.get_settings.cache_clear()
    yield
    config_module.get_settings.cache_clear()


def test_defaults(tmp_path: Path) -> None:
    settings = GraphSettings(vault_path=tmp_path, _env_file=None)

    assert settings.vault_path == tmp_path.resolve()
    assert settings.max_path_length == 10
    assert settings.max_paths_to_show == 5
    assert settings.traversal_strategy == TraversalStrategy.AUTO
    assert settings.bidirectional_threshold == 500
    assert settings.max_tag_matches == 50
    assert settings.include_backlinks and settings.include_embedded_links and settings.include_tags
    assert settings.cache_graph is True
    assert settings.cache_ttl_seconds == 60.0


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VAULTGRAPH_VAULT_PATH", str(tmp_path))
    monkeypatch.setenv("VAULTGRAPH_MAX_PATH_LENGTH", "4")
    monkeypatch.setenv("VAULTGRAPH_TRAVERSAL_STRATEGY", "bidirectional")
    monkeypatch.setenv("VAULTGRAPH_INCLUDE_TAGS", "false")

    settings = config_module.reload_settings()

    assert settings.vault_path == tmp_path.resolve()
    assert settings.max_path_length == 4
    assert settings.traversal_strategy == TraversalStrategy.BIDIRECTIONAL
    assert settings.include_tags is False


def test_get_settings_is_cached(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VAULTGRAPH_VAULT_PATH", str(tmp_path))

    assert config_module.get_settings() is config_module.get_settings()


def test_log_level_is_normalized(tmp_path: Path) -> None:
    settings = GraphSettings(vault_path=tmp_path, log_level="debug", _env_file=None)

    assert settings.log_level == "DEBUG"


def test_rejects_unknown_log_level(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        GraphSettings(vault_path=tmp_path, log_level="chatty", _env_file=None)


def test_rejects_non_positive_ttl(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        GraphSettings(vault_path=tmp_path, cache_ttl_seconds=0, _env_file=None)


def test_rejects_empty_vault_path() -> None:
    with pytest.raises(ValidationError):
        GraphSettings(vault_path="", _env_file=None)


def test_effective_batch_size(tmp_path: Path) -> None:
    parallel = GraphSettings(vault_path=tmp_path, batch_size=2, parallel_batch_size=8, _env_file=None)
    sequential = GraphSettings(
        vault_path=tmp_path, batch_size=2, parallel_batch_size=8,
        parallel_processing=False, _env_file=None,
    )

    assert parallel.effective_batch_size == 8
    assert sequential.effective_batch_size == 2


def test_settings_are_frozen(tmp_path: Path) -> None:
    settings = GraphSettings(vault_path=tmp_path, _env_file=None)

    with pytest.raises(ValidationError):
        settings.max_path_length = 3
