from types import SimpleNamespace

import pytest

from vault_links.config import default_config_path, load_vault_configuration
from vault_links.session import SessionRegistry


def write_config(tmp_path, text: str):
    config_path = tmp_path / "vaults.yaml"
    config_path.write_text(text, encoding="utf-8")
    return config_path


@pytest.fixture
def config_path(tmp_path):
    (tmp_path / "personal").mkdir()
    (tmp_path / "work").mkdir()
    return write_config(
        tmp_path,
        f"""
default: personal
log_level: debug
vaults:
  personal:
    path: {tmp_path / "personal"}
    description: Personal notes
    exclude_folders: [Templates]
  work:
    path: {tmp_path / "work"}
    case_sensitive: false
""",
    )


def test_load_configuration(config_path, tmp_path):
    configuration = load_vault_configuration(config_path)

    assert configuration.default_vault == "personal"
    assert configuration.log_level == "DEBUG"
    personal = configuration.get("personal")
    assert personal.path == (tmp_path / "personal").resolve()
    assert personal.exclude_folders == ("Templates",)
    assert personal.case_sensitive is None
    assert configuration.get("work").case_sensitive is False


def test_unknown_vault_lists_configured_names(config_path):
    configuration = load_vault_configuration(config_path)
    with pytest.raises(ValueError, match="personal, work"):
        configuration.get("missing")


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_vault_configuration(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "default: a\nvaults: {}\n",
        "default: b\nvaults:\n  a:\n    path: /tmp\n",
        "default: a\nvaults:\n  a:\n    path: /tmp\n    exclude_folders: Templates\n",
        "default: a\nvaults:\n  a:\n    path: /tmp\n    case_sensitive: maybe\n",
        "default: a\nlog_level: LOUD\nvaults:\n  a:\n    path: /tmp\n",
        "default: a\nvaults:\n  a: {}\n",
    ],
)
def test_invalid_configuration_raises(tmp_path, text):
    with pytest.raises(ValueError):
        load_vault_configuration(write_config(tmp_path, text))


def test_environment_variable_overrides_config_path(monkeypatch, tmp_path):
    monkeypatch.setenv("VAULT_LINKS_CONFIG", str(tmp_path / "custom.yaml"))
    assert default_config_path() == tmp_path / "custom.yaml"


class TestSessionRegistry:
    def test_active_vault_is_tracked_per_session(self, config_path):
        registry = SessionRegistry(load_vault_configuration(config_path))
        first = SimpleNamespace(session=object())
        second = SimpleNamespace(session=object())

        registry.set_active(first, "work")

        assert registry.get_active(first).name == "work"
        assert registry.get_active(second).name == "personal"
        assert registry.resolve(None, first).name == "work"
        assert registry.resolve("personal", first).name == "personal"

    def test_resolved_context_merges_exclusions_and_case_setting(self, config_path):
        registry = SessionRegistry(load_vault_configuration(config_path))

        personal = registry.resolve("personal")
        work = registry.resolve("work")

        assert "Templates" in personal.exclude_folders
        assert ".obsidian" in personal.exclude_folders
        assert work.case_sensitive is False

    def test_session_overrides_apply_to_active_vault_only(self, config_path):
        registry = SessionRegistry(load_vault_configuration(config_path))
        ctx = SimpleNamespace(session=object())

        selected = registry.set_active(ctx, "work", exclude_folders=["Drafts"], case_sensitive=True)

        assert selected.case_sensitive is True
        assert "Drafts" in selected.exclude_folders
        assert "Drafts" in registry.resolve(None, ctx).exclude_folders
        assert "Drafts" not in registry.resolve("personal", ctx).exclude_folders
        assert registry.resolve("work").case_sensitive is False

        registry.set_active(ctx, "work")
        assert registry.resolve(None, ctx).case_sensitive is False

    def test_unknown_vault_is_rejected(self, config_path):
        registry = SessionRegistry(load_vault_configuration(config_path))
        with pytest.raises(ValueError):
            registry.set_active(SimpleNamespace(session=object()), "missing")
