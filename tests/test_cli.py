from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from noted import __version__
from noted.cli import app
from noted.store import NoteStore

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "cli.sqlite")


def _invoke(db_path: str, *args: str, input: str | None = None):
    return runner.invoke(app, [*args, "--db-path", db_path], input=input)


def _remember(db_path: str, content: str, *extra: str) -> dict:
    result = _invoke(db_path, "remember", content, "--json", *extra)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("remember", "recall", "forget", "grep", "folder", "sync"):
        assert name in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_remember_json_shape(db_path: str) -> None:
    data = _remember(db_path, "Prefer tabs", "-c", "user-pref", "-i", "4", "--source", "chat")

    assert data["status"] == "remembered"
    assert data["category"] == "user-pref"
    assert data["importance"] == 4
    assert data["title"] == "Prefer tabs"
    assert data["source"] == "chat"
    assert "expires_at" not in data
    assert "source_ref" not in data


def test_remember_with_ttl_reports_expiry(db_path: str) -> None:
    data = _remember(db_path, "short lived", "--ttl", "2h")
    assert data["expires_at"].endswith("Z")


def test_remember_rejects_bad_ttl(db_path: str) -> None:
    result = _invoke(db_path, "remember", "x", "--ttl", "soon")
    assert result.exit_code == 1
    assert "Invalid TTL" in result.output


def test_remember_human_output(db_path: str) -> None:
    result = _invoke(db_path, "remember", "Coffee machine is on floor 3")
    assert result.exit_code == 0
    assert "Remembered #1" in result.stdout
    assert "Category:   fact" in result.stdout


def test_recall_json_shape(db_path: str) -> None:
    remembered = _remember(db_path, "The VPN config lives in vault")

    result = _invoke(db_path, "recall", "vpn", "--json")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["query"] == "vpn"
    assert data["method"] == "keyword"
    assert data["count"] == 1
    assert data["memories"][0]["id"] == remembered["id"]
    assert data["memories"][0]["content"] == "The VPN config lives in vault"
    assert "score" not in data["memories"][0]


def test_recall_human_output_shows_category(db_path: str) -> None:
    _remember(db_path, "Ship on thursdays", "-c", "decision")

    result = _invoke(db_path, "recall", "ship")

    assert result.exit_code == 0
    assert "[decision]" in result.stdout
    assert "via keyword search" in result.stdout


def test_recall_no_results(db_path: str) -> None:
    result = _invoke(db_path, "recall", "nothing")
    assert result.exit_code == 0
    assert "No memories found." in result.stdout


def test_recall_blank_query_fails(db_path: str) -> None:
    result = _invoke(db_path, "recall", "  ")
    assert result.exit_code == 1
    assert "query is required" in result.output


def test_forget_requires_a_filter(db_path: str) -> None:
    result = _invoke(db_path, "forget")
    assert result.exit_code == 1
    assert "At least one filter is required" in result.output


def test_forget_without_force_is_dry_run(db_path: str) -> None:
    low = _remember(db_path, "low value", "-i", "1")
    _remember(db_path, "high value", "-i", "5")

    result = _invoke(db_path, "forget", "--importance-below", "3", "--json")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["dry_run"] is True
    assert data["would_delete"] == 1
    assert [m["id"] for m in data["memories"]] == [low["id"]]

    store = NoteStore(db_path)
    try:
        assert store.get_note(low["id"])
    finally:
        store.close()


def test_forget_force_json_deletes(db_path: str) -> None:
    low = _remember(db_path, "low value", "-i", "1")

    result = _invoke(db_path, "forget", "--importance-below", "3", "--force", "--json")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data == {
        "dry_run": False,
        "deleted": 1,
        "memories": [
            {"id": low["id"], "title": "low value", "category": "fact", "importance": 1}
        ],
    }


def test_forget_force_asks_for_confirmation(db_path: str) -> None:
    memory = _remember(db_path, "to be removed", "-c", "todo")

    aborted = _invoke(db_path, "forget", "-c", "todo", "--force", input="n\n")
    assert aborted.exit_code == 0
    assert "Aborted." in aborted.stdout

    confirmed = _invoke(db_path, "forget", "-c", "todo", "--force", input="y\n")
    assert confirmed.exit_code == 0
    assert "Deleted 1 memories." in confirmed.stdout

    missing = _invoke(db_path, "forget", "--id", str(memory["id"]))
    assert missing.exit_code == 1
    assert f"memory #{memory['id']} not found" in missing.output


def test_forget_no_match(db_path: str) -> None:
    result = _invoke(db_path, "forget", "-q", "nothing-here")
    assert result.exit_code == 0
    assert "No memories match" in result.stdout


def test_forget_older_than(db_path: str) -> None:
    _remember(db_path, "fresh memory")
    result = _invoke(db_path, "forget", "--older-than", "30d", "--json")
    assert result.exit_code == 0
    assert json.loads(result.stdout)["would_delete"] == 0


def test_note_crud(db_path: str) -> None:
    created = _invoke(
        db_path, "add", "Groceries", "--content", "eggs, milk", "--tags", "home,list", "--json"
    )
    assert created.exit_code == 0, created.output
    note_id = json.loads(created.stdout)["id"]

    shown = _invoke(db_path, "show", str(note_id), "--json")
    data = json.loads(shown.stdout)
    assert data["title"] == "Groceries"
    assert data["tags"] == ["home", "list"]

    raw = _invoke(db_path, "show", str(note_id), "--raw")
    assert raw.stdout.strip() == "eggs, milk"

    edited = _invoke(db_path, "edit", str(note_id), "--content", "eggs, milk, bread")
    assert edited.exit_code == 0
    grep = _invoke(db_path, "grep", "bread", "--json")
    assert [n["id"] for n in json.loads(grep.stdout)] == [note_id]

    listed = _invoke(db_path, "list", "--tag", "home", "--json")
    assert [n["id"] for n in json.loads(listed.stdout)] == [note_id]

    deleted = _invoke(db_path, "delete", str(note_id), "--force")
    assert deleted.exit_code == 0
    assert _invoke(db_path, "show", str(note_id)).exit_code == 1


def test_add_requires_content(db_path: str) -> None:
    result = _invoke(db_path, "add", "Empty", input="")
    assert result.exit_code == 1
    assert "content is required" in result.output


def test_edit_requires_a_change(db_path: str) -> None:
    result = _invoke(db_path, "edit", "1")
    assert result.exit_code == 1
    assert "nothing to update" in result.output


def _add(db_path: str, title: str, *extra: str) -> int:
    result = _invoke(db_path, "add", title, "--content", "body", "--json", *extra)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)["id"]


def test_edit_tags_replace_the_tag_set(db_path: str) -> None:
    note_id = _add(db_path, "Trip", "--tags", "travel,todo")

    result = _invoke(db_path, "edit", str(note_id), "-T", "travel, 2026", "--json")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"id": note_id, "title": "Trip", "tags": ["2026", "travel"]}

    cleared = _invoke(db_path, "edit", str(note_id), "--tags", "", "--json")
    assert json.loads(cleared.stdout)["tags"] == []
    shown = json.loads(_invoke(db_path, "show", str(note_id), "--json").stdout)
    assert shown["tags"] == []
    assert shown["content"] == "body"


def test_edit_title_json(db_path: str) -> None:
    note_id = _add(db_path, "Draft")

    result = _invoke(db_path, "edit", str(note_id), "-t", "Final", "--json")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"id": note_id, "title": "Final", "tags": []}


def test_edit_folder_moves_note(db_path: str) -> None:
    folder_id = json.loads(_invoke(db_path, "folder", "create", "Work", "--json").stdout)["id"]
    note_id = _add(db_path, "Report")

    moved = _invoke(db_path, "edit", str(note_id), "--folder", str(folder_id))
    assert moved.exit_code == 0, moved.output
    listed = _invoke(db_path, "list", "--folder", str(folder_id), "--json")
    assert [n["id"] for n in json.loads(listed.stdout)] == [note_id]

    _invoke(db_path, "edit", str(note_id), "--folder", "0")
    shown = json.loads(_invoke(db_path, "show", str(note_id), "--json").stdout)
    assert "folder_id" not in shown


def test_edit_missing_note(db_path: str) -> None:
    result = _invoke(db_path, "edit", "42", "--tags", "x")
    assert result.exit_code == 1
    assert "note #42 not found" in result.output


def test_pin_and_unpin(db_path: str) -> None:
    note_id = _add(db_path, "Important")

    pinned = _invoke(db_path, "pin", str(note_id), "--json")
    assert pinned.exit_code == 0, pinned.output
    assert json.loads(pinned.stdout) == {"id": note_id, "title": "Important", "pinned": True}
    shown = json.loads(_invoke(db_path, "show", str(note_id), "--json").stdout)
    assert shown["pinned"] is True
    assert "pinned_at" in shown

    unpinned = _invoke(db_path, "unpin", str(note_id))
    assert unpinned.exit_code == 0
    assert f"Unpinned note #{note_id}: Important" in unpinned.stdout
    shown = json.loads(_invoke(db_path, "show", str(note_id), "--json").stdout)
    assert shown["pinned"] is False


def test_pin_human_output_and_missing(db_path: str) -> None:
    note_id = _add(db_path, "Keep")

    result = _invoke(db_path, "pin", str(note_id))
    assert result.exit_code == 0
    assert f"Pinned note #{note_id}: Keep" in result.stdout

    missing = _invoke(db_path, "pin", "999")
    assert missing.exit_code == 1
    assert "note #999 not found" in missing.output


def test_tags_command(db_path: str) -> None:
    _remember(db_path, "tagged memory")
    result = _invoke(db_path, "tags", "--count")
    assert result.exit_code == 0
    assert "memory (1)" in result.stdout
    assert "importance:3 (1)" in result.stdout


def test_folder_commands(db_path: str) -> None:
    created = _invoke(db_path, "folder", "create", "Work", "--json")
    assert created.exit_code == 0, created.output
    folder_id = json.loads(created.stdout)["id"]

    listed = _invoke(db_path, "folder", "list", "--json")
    assert json.loads(listed.stdout) == [{"id": folder_id, "name": "Work", "parent_id": None}]

    deleted = _invoke(db_path, "folder", "delete", str(folder_id), "--force")
    assert deleted.exit_code == 0
    assert _invoke(db_path, "folder", "delete", str(folder_id), "--force").exit_code == 1


def test_stats_json(db_path: str) -> None:
    _remember(db_path, "counted")
    result = _invoke(db_path, "stats", "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["notes"] == 1
    assert data["memories"] == 1


def test_sync_without_index_fails(db_path: str) -> None:
    result = _invoke(db_path, "sync")
    assert result.exit_code == 1
    assert "Vector index unavailable" in result.output


def test_init_db(db_path: str) -> None:
    result = _invoke(db_path, "init-db")
    assert result.exit_code == 0
    assert Path(db_path).exists()
