"""Tests for the MCP tool layer.

Tools are called directly; a registry built from a temporary vaults.yaml is
installed on the server for the duration of each test.
"""

import asyncio
from types import SimpleNamespace

import pytest

from vault_links.config import load_vault_configuration
from vault_links.models import (
    AnalyzeVaultInput,
    BacklinksInput,
    DeleteNoteInput,
    EditTagsInput,
    ListVaultsInput,
    MoveNotesInput,
    SetActiveVaultInput,
    ValidateLinksInput,
)
from vault_links.server import set_registry
from vault_links.session import SessionRegistry
from vault_links.tools.link_tools import (
    analyze_vault_links,
    find_note_backlinks,
    move_notes,
    validate_vault_links,
)
from vault_links.tools.note_tools import delete_vault_note, edit_note_tags
from vault_links.tools.vault_tools import list_vaults, set_active_vault


def write_note(root, relative, content):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def vaults(tmp_path):
    personal = tmp_path / "personal"
    work = tmp_path / "work"
    write_note(personal, "Notes/A.md", "See [[B]] and [text](C.md) #project\n")
    write_note(personal, "Notes/B.md", "# B\n")
    write_note(personal, "Notes/C.md", "# C\n")
    write_note(work, "Inbox.md", "[[Missing]]\n")

    config_path = tmp_path / "vaults.yaml"
    config_path.write_text(
        f"default: personal\nvaults:\n"
        f"  personal:\n    path: {personal}\n    case_sensitive: true\n"
        f"  work:\n    path: {work}\n    case_sensitive: true\n",
        encoding="utf-8",
    )
    set_registry(SessionRegistry(load_vault_configuration(config_path)))
    yield SimpleNamespace(personal=personal, work=work)
    set_registry(None)


def run(coro):
    return asyncio.run(coro)


def test_list_and_select_vaults(vaults):
    ctx = SimpleNamespace(session=object())

    listing = run(list_vaults(ListVaultsInput(), ctx))
    assert listing["default"] == "personal"
    assert listing["active"] == "personal"
    assert [vault["name"] for vault in listing["vaults"]] == ["personal", "work"]

    selected = run(set_active_vault(SetActiveVaultInput(vault="work", exclude_folders=["Archive"]), ctx))
    assert selected["status"] == "active"
    assert "Archive" in selected["exclude_folders"]
    assert selected["case_sensitive"] is True

    report = run(validate_vault_links(ValidateLinksInput(), ctx))
    assert report["vault"] == "work"
    assert report["broken_count"] == 1


def test_move_notes_tool_rewrites_links(vaults):
    payload = run(move_notes(MoveNotesInput(
        moves=[{"source": "Notes/B", "destination": "Archive/B"}],
    )))

    assert payload["status"] == "moved"
    assert payload["files_link_updated"] == 1
    assert (vaults.personal / "Notes/A.md").read_text(encoding="utf-8") == (
        "See [[Archive/B|B]] and [text](C.md) #project\n"
    )


def test_move_notes_dry_run(vaults):
    payload = run(move_notes(MoveNotesInput(
        moves=[{"source": "Notes/B", "destination": "Archive/B"}],
        dry_run=True,
    )))

    assert payload["status"] == "planned"
    assert (vaults.personal / "Notes/B.md").is_file()


def test_analyze_and_backlinks(vaults):
    analysis = run(analyze_vault_links(AnalyzeVaultInput()))
    assert analysis["tags"] == {"project": 1}
    assert analysis["orphans"] == []
    assert analysis["graph"]["edges"] == 2

    backlinks = run(find_note_backlinks(BacklinksInput(title="Notes/C.md")))
    assert backlinks["count"] == 1
    assert backlinks["backlinks"][0]["note"] == "Notes/A"


def test_tag_editing_and_deletion(vaults):
    tags = run(edit_note_tags(EditTagsInput(title="Notes/B", add=["#draft"])))
    assert tags["added"]["status"] == "updated"
    assert tags["removed"] is None

    deleted = run(delete_vault_note(DeleteNoteInput(title="Notes/A", to_trash=False)))
    assert deleted["status"] == "deleted"
    assert not (vaults.personal / "Notes/A.md").exists()
