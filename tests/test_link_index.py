import pytest

from vault_links.core.link_index import build_index
from vault_links.session import VaultContext

FILES = {
    "Notes/A.md": "See [[B]] and [text](C.md) and [[Missing]]\n",
    "Notes/B.md": "Back to [[A]]\n",
    "Notes/C.md": "# C\n",
    ".obsidian/workspace.md": "[[A]]\n",
    "Templates/Daily.md": "[[A]]\n",
}


@pytest.fixture
def index(make_vault):
    return build_index(make_vault(FILES, exclude_folders=["Templates"]))


def test_walk_skips_dot_folders_and_excluded_folders(index):
    assert list(index.notes) == ["Notes/A", "Notes/B", "Notes/C"]


def test_inbound_sets_invert_outbound_links(index):
    assert index.inbound_links("Notes/B") == ["Notes/A"]
    assert index.inbound_links("Notes/C") == ["Notes/A"]
    assert index.inbound_links("Notes/A") == ["Notes/B"]


def test_inbound_membership_matches_resolved_outbound_links(index):
    for source, note in index.notes.items():
        for target in index.notes:
            links_to_target = any(link.resolved == target for link in note.links)
            assert (source in index.inbound_links(target)) == links_to_target


def test_unresolved_links_are_listed(index):
    unresolved = [(note.identity, link.text) for note, link in index.unresolved()]
    assert unresolved == [("Notes/A", "[[Missing]]")]


def test_payload_marks_unresolved_links(index):
    payload = index.as_payload()
    outbound = payload["notes"]["Notes/A"]["outbound"]
    assert outbound[0]["resolved"] == "Notes/B"
    assert outbound[1]["resolved"] == "unresolved"
    assert outbound[2]["resolved"] == "Notes/C"


def test_unreadable_files_are_skipped_and_reported(make_vault):
    vault = make_vault({"A.md": "[[B]]", "B.md": ""})
    (vault.root / "Bad.md").write_bytes(b"\xff\xfe not utf-8")
    index = build_index(vault)
    assert "Bad" not in index.notes
    assert [issue.path for issue in index.errors] == ["Bad.md"]
    assert index.errors[0].operation == "read"


def test_build_index_accepts_plain_path(tmp_path):
    (tmp_path / "Solo.md").write_text("alone", encoding="utf-8")
    index = build_index(tmp_path)
    assert list(index.notes) == ["Solo"]


def test_missing_vault_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_index(VaultContext.for_path(tmp_path / "missing"))
