from pathlib import Path

import pytest

from vault_links.core.link_index import build_index
from vault_links.core.move_operations import apply_move, plan_move
from vault_links.data_models import LinkRewrite, MoveRecord
from vault_links.errors import BatchValidationError, MoveConflictError, MoveExecutionError

SCENARIO = {
    "Notes/A.md": "See [[B]] and [text](C.md)\n",
    "Notes/B.md": "# B\n",
    "Notes/C.md": "# C\n",
}


def read(vault, relative: str) -> str:
    return (vault.root / relative).read_text(encoding="utf-8")


# ==============================================================================
# LINK REWRITING
# ==============================================================================


def test_moving_note_out_of_shared_folder_writes_path_with_alias(make_vault):
    vault = make_vault(SCENARIO)

    report = apply_move(vault, [("Notes/B.md", "Archive/B.md")])

    assert read(vault, "Notes/A.md") == "See [[Archive/B|B]] and [text](C.md)\n"
    assert report.files_link_updated == 1
    assert report.moved == [MoveRecord("Notes/B", "Archive/B")]
    assert (vault.root / "Archive/B.md").is_file()
    assert not (vault.root / "Notes/B.md").exists()


def test_moved_links_resolve_to_new_location(make_vault):
    vault = make_vault(SCENARIO)

    apply_move(vault, [("Notes/B", "Archive/B")])

    index = build_index(vault)
    resolved = [link.resolved for link in index.get("Notes/A").links]
    assert resolved == ["Archive/B", "Notes/C"]
    assert index.inbound_links("Archive/B") == ["Notes/A"]


def test_move_then_inverse_restores_text(make_vault):
    vault = make_vault(SCENARIO)

    apply_move(vault, [("Notes/B", "Archive/B")])
    apply_move(vault, [("Archive/B", "Notes/B")])

    assert read(vault, "Notes/A.md") == SCENARIO["Notes/A.md"]
    assert (vault.root / "Notes/B.md").is_file()


def test_relative_markdown_link_is_rewritten_and_restored(make_vault):
    vault = make_vault(SCENARIO)

    apply_move(vault, [("Notes/C", "Archive/C")])
    assert read(vault, "Notes/A.md") == "See [[B]] and [text](../Archive/C.md)\n"

    apply_move(vault, [("Archive/C", "Notes/C")])
    assert read(vault, "Notes/A.md") == SCENARIO["Notes/A.md"]


def test_name_match_does_not_touch_longer_names(make_vault):
    vault = make_vault({
        "Foo.md": "",
        "Foobar.md": "",
        "Ref.md": "[[Foo]] [[Foobar]] [[Foo|the foo]]",
    })

    apply_move(vault, [("Foo", "Bar")])

    assert read(vault, "Ref.md") == "[[Bar]] [[Foobar]] [[Bar|the foo]]"


def test_anchor_and_alias_are_preserved(make_vault):
    vault = make_vault({
        "Notes/A.md": "[[B#Section]] and [[B|Bee]]",
        "Notes/B.md": "",
    })

    apply_move(vault, [("Notes/B", "Archive/B")])

    assert read(vault, "Notes/A.md") == "[[Archive/B#Section|B]] and [[Archive/B|Bee]]"


def test_root_style_markdown_link_keeps_root_style(make_vault):
    vault = make_vault({
        "Notes/A.md": "[c](Notes/C.md)",
        "Notes/C.md": "",
    })

    apply_move(vault, [("Notes/C", "Archive/C")])

    assert read(vault, "Notes/A.md") == "[c](Archive/C.md)"


def test_moved_note_keeps_its_own_relative_links(make_vault):
    vault = make_vault({
        "Notes/A.md": "[c](C.md) and [[C]]",
        "Notes/C.md": "",
    })

    apply_move(vault, [("Notes/A", "Archive/A")])

    assert read(vault, "Archive/A.md") == "[c](../Notes/C.md) and [[C]]"


def test_links_in_unrelated_notes_are_untouched(make_vault):
    files = dict(SCENARIO)
    files["Other.md"] = "[[Notes/C]] and [[Nowhere]]"
    vault = make_vault(files)

    report = apply_move(vault, [("Notes/B", "Archive/B")])

    assert read(vault, "Other.md") == files["Other.md"]
    assert [rewrite.path for rewrite in report.files] == ["Notes/A.md"]


# ==============================================================================
# CASE HANDLING
# ==============================================================================


def test_link_written_in_other_case_is_restored_by_inverse(make_vault):
    vault = make_vault({"Notes/A.md": "See [[b]]\n", "Notes/B.md": ""})

    apply_move(vault, [("Notes/B", "Archive/B")])
    assert read(vault, "Notes/A.md") == "See [[Archive/B|b]]\n"

    apply_move(vault, [("Archive/B", "Notes/B")])
    assert read(vault, "Notes/A.md") == "See [[b]]\n"


def test_case_insensitive_vault_scenario_and_inverse(make_vault):
    original = "See [[b]] [x](c.md)\n"
    vault = make_vault(
        {"Notes/A.md": original, "Notes/B.md": "# B\n", "Notes/C.md": "# C\n"},
        case_sensitive=False,
    )

    apply_move(vault, [("Notes/B", "Archive/B"), ("Notes/C", "Archive/C")])

    assert read(vault, "Notes/A.md") == "See [[Archive/B|b]] [x](../Archive/c.md)\n"
    index = build_index(vault)
    assert [link.resolved for link in index.get("Notes/A").links] == ["Archive/B", "Archive/C"]

    apply_move(vault, [("Archive/B", "Notes/B"), ("Archive/C", "Notes/C")])

    assert read(vault, "Notes/A.md") == original


def test_case_insensitive_folder_move_keeps_every_link_resolved(make_vault):
    vault = make_vault(
        {
            "Projects/Alpha.md": "[[beta]] and [g](sub/gamma.md)",
            "Projects/Beta.md": "",
            "Projects/sub/Gamma.md": "",
            "Index.md": "[[projects/alpha]]",
        },
        case_sensitive=False,
    )

    apply_move(vault, [("Projects", "Archive/Projects")])

    assert read(vault, "Archive/Projects/Alpha.md") == "[[beta]] and [g](sub/gamma.md)"
    assert read(vault, "Index.md") == "[[Archive/Projects/Alpha]]"
    index = build_index(vault)
    links = [link for note in index.notes.values() for link in note.links]
    assert len(links) == 3
    assert all(link.resolved for link in links)


# ==============================================================================
# BATCH SEMANTICS
# ==============================================================================


def test_conflicting_destination_rejects_whole_batch(make_vault):
    files = dict(SCENARIO)
    files["Archive/C.md"] = "existing"
    vault = make_vault(files)

    with pytest.raises(MoveConflictError) as excinfo:
        apply_move(vault, [("Notes/B", "Archive/B"), ("Notes/C", "Archive/C")])

    assert excinfo.value.conflicts == ["Archive/C.md"]
    assert (vault.root / "Notes/B.md").is_file()
    assert not (vault.root / "Archive/B.md").exists()
    assert read(vault, "Notes/A.md") == SCENARIO["Notes/A.md"]
    assert read(vault, "Archive/C.md") == "existing"


def test_plan_move_reports_conflicts_without_raising(make_vault):
    files = dict(SCENARIO)
    files["Archive/C.md"] = "existing"
    vault = make_vault(files)

    report = plan_move(build_index(vault), [("Notes/B", "Archive/B"), ("Notes/C", "Archive/C")])

    assert report.conflicts == ["Archive/C.md"]
    assert report.files == []


def test_force_overwrites_existing_destination(make_vault):
    files = dict(SCENARIO)
    files["Archive/C.md"] = "existing"
    vault = make_vault(files)

    apply_move(vault, [("Notes/C", "Archive/C")], force=True)

    assert read(vault, "Archive/C.md") == "# C\n"
    assert not (vault.root / "Notes/C.md").exists()


@pytest.mark.parametrize(
    "moves, fragment",
    [
        ([("Nope", "Elsewhere")], "does not exist"),
        ([("Notes/B", "Archive/X"), ("Notes/C", "Archive/X")], "used by both"),
        ([("Notes/B", "../outside")], "escapes"),
        ([("Notes/B", "Notes/D"), ("Notes/C", "Notes/B")], "chained"),
        ([("Notes/B", "Notes/B")], "both"),
        ([("Notes", "Notes/Old")], "into itself"),
        ([("Notes/B", "node_modules/B")], "excluded folder"),
        ([("Notes/B", ".trash/B")], "excluded folder"),
        ([("Notes", "Archive/.hidden/Notes")], "excluded folder"),
    ],
)
def test_malformed_batches_write_nothing(make_vault, moves, fragment):
    vault = make_vault(SCENARIO)

    with pytest.raises(BatchValidationError) as excinfo:
        apply_move(vault, moves)

    assert any(fragment in problem for problem in excinfo.value.problems)
    for relative, content in SCENARIO.items():
        assert read(vault, relative) == content


def test_dry_run_reports_plan_without_writing(make_vault):
    vault = make_vault(SCENARIO)

    report = apply_move(vault, [("Notes/B", "Archive/B")], dry_run=True)

    assert report.dry_run
    assert report.as_payload()["status"] == "planned"
    assert [rewrite.path for rewrite in report.files] == ["Notes/A.md"]
    assert report.files[0].rewrites == [LinkRewrite("wiki", "[[B]]", "[[Archive/B|B]]")]
    assert (vault.root / "Notes/B.md").is_file()
    assert not (vault.root / "Archive").exists()
    assert read(vault, "Notes/A.md") == SCENARIO["Notes/A.md"]


def test_files_link_updated_counts_files_not_links(make_vault):
    vault = make_vault({
        "A.md": "[[B]] [[B]] [b](B.md)",
        "C.md": "[[B]]",
        "B.md": "",
    })

    report = apply_move(vault, [("B", "Archive/B")])

    assert report.files_link_updated == 2
    assert read(vault, "A.md") == "[[Archive/B|B]] [[Archive/B|B]] [b](Archive/B.md)"


# ==============================================================================
# FOLDER MOVES
# ==============================================================================


def test_folder_move_expands_rewrites_and_prunes(make_vault):
    vault = make_vault({
        "Projects/Alpha.md": "[[Beta]]",
        "Projects/Beta.md": "",
        "Projects/sub/Gamma.md": "[Alpha](../Alpha.md)",
        "Index.md": "[[Projects/Alpha]] and [[Gamma]] and [b](Projects/Beta.md)",
    })

    report = apply_move(vault, [("Projects", "Archive/Projects")])

    assert [record.destination for record in report.moved] == [
        "Archive/Projects/Alpha",
        "Archive/Projects/Beta",
        "Archive/Projects/sub/Gamma",
    ]
    assert report.folders == [MoveRecord("Projects", "Archive/Projects")]
    assert read(vault, "Index.md") == (
        "[[Archive/Projects/Alpha]] and [[Gamma]] and [b](Archive/Projects/Beta.md)"
    )
    assert read(vault, "Archive/Projects/Alpha.md") == "[[Beta]]"
    assert read(vault, "Archive/Projects/sub/Gamma.md") == "[Alpha](../Alpha.md)"
    assert report.files_link_updated == 1
    assert not (vault.root / "Projects").exists()


# ==============================================================================
# FAILURES
# ==============================================================================


def test_rewrite_failure_is_reported_per_file(make_vault, monkeypatch):
    files = dict(SCENARIO)
    files["D.md"] = "[[Notes/B]]"
    vault = make_vault(files)

    original = Path.write_text

    def failing_write(self, *args, **kwargs):
        if self.name == "A.md":
            raise PermissionError("denied")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Path, "write_text", failing_write)
    report = apply_move(vault, [("Notes/B", "Archive/B")])
    monkeypatch.undo()

    assert [issue.path for issue in report.errors] == ["Notes/A.md"]
    assert report.errors[0].operation == "write"
    assert report.files_link_updated == 1
    assert read(vault, "D.md") == "[[Archive/B]]"
    assert (vault.root / "Archive/B.md").is_file()


def test_failed_physical_move_rolls_back(make_vault, monkeypatch):
    vault = make_vault(SCENARIO)

    original = Path.rename

    def failing_rename(self, target):
        if self.name == "C.md":
            raise OSError("disk full")
        return original(self, target)

    monkeypatch.setattr(Path, "rename", failing_rename)
    with pytest.raises(MoveExecutionError) as excinfo:
        apply_move(vault, [("Notes/B", "Archive/B"), ("Notes/C", "Archive/C")])
    monkeypatch.undo()

    assert excinfo.value.source == "Notes/C"
    assert (vault.root / "Notes/B.md").is_file()
    assert not (vault.root / "Archive/B.md").exists()
    assert read(vault, "Notes/A.md") == SCENARIO["Notes/A.md"]
