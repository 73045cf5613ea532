from pathlib import Path

import pytest

from vault_links.session import VaultContext


def write_note(root: Path, relative: str, content: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def make_vault(tmp_path):
    """Build a vault from ``{relative path: content}`` and return its context."""

    def _make(files: dict[str, str], **options) -> VaultContext:
        root = tmp_path / "vault"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            write_note(root, relative, content)
        options.setdefault("case_sensitive", True)
        return VaultContext.for_path(root, name="test", **options)

    return _make
