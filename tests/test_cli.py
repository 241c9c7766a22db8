"""Tests for the command-line interface."""

import json
from pathlib import Path

from click.testing import CliRunner

from vaultcanvas.cli import cli
from vaultcanvas.commands.canvas_cmd import run_canvas_list, run_canvas_new
from vaultcanvas.commands.node_cmd import run_node_add_text, run_node_connect, run_node_move
from vaultcanvas.commands.summary_cmd import run_summary
from vaultcanvas.commands.view_cmd import run_view
from vaultcanvas.models import Selector
from vaultcanvas.views.store import DocumentStore


def read_json(capsys):
    return json.loads(capsys.readouterr().out)


def test_view_json(vault_path: Path, capsys):
    assert run_view(vault_path, "folder:Projects", output_json=True) == 0
    doc = read_json(capsys)
    assert doc["id"] == "folder:Projects"
    assert [n["id"] for n in doc["nodes"]] == [
        "folder:Projects/Archive",
        "Projects/diagram.png",
        "Projects/plan.md",
    ]
    folder = doc["nodes"][0]
    assert folder["data"]["total_markdown"] == 2
    assert folder["data"]["preview_truncated"] is False


def test_view_table(vault_path: Path, capsys):
    assert run_view(vault_path, "tag:idea") == 0
    captured = capsys.readouterr()
    assert "Inbox.md" in captured.out
    assert "View updated" in captured.err


def test_view_bad_selector(vault_path: Path, capsys):
    assert run_view(vault_path, "graph:x") == 1
    assert "Unknown selector kind" in capsys.readouterr().err


def test_view_missing_folder(vault_path: Path):
    assert run_view(vault_path, "folder:Nope") == 1


def test_summary_json(vault_path: Path, capsys):
    assert run_summary(vault_path, "", limit=1, output_json=True) == 0
    (projects,) = read_json(capsys)
    assert projects["dir_path"] == "Projects"
    assert projects["total_files_recursive"] == 4
    assert [r["name"] for r in projects["recent_markdown"]] == ["plan.md"]


def test_summary_hidden_dir(vault_path: Path, capsys):
    assert run_summary(vault_path, ".hidden") == 1
    assert "Hidden" in capsys.readouterr().err


def test_canvas_new_and_list(vault_path: Path, capsys):
    assert run_canvas_new(vault_path, "Ideas") == 0
    view_id = capsys.readouterr().out.strip()
    assert view_id.startswith("canvas:")

    assert run_canvas_list(vault_path, output_json=True) == 0
    (entry,) = read_json(capsys)
    assert entry["title"] == "Ideas"
    assert f"canvas:{entry['id']}" == view_id


def test_node_edits(vault_path: Path, capsys):
    assert run_view(vault_path, "folder", output_json=True) == 0
    capsys.readouterr()

    assert run_node_move(vault_path, "folder:", "Inbox.md", 120, 80) == 0
    assert run_node_add_text(vault_path, "folder:", "remember", at=(0, 900)) == 0
    assert run_node_connect(vault_path, "folder:", "Inbox.md", "photo.jpg") == 0
    assert run_node_move(vault_path, "folder:", "ghost.md", 0, 0) == 1

    doc = DocumentStore(vault_path / ".vaultcanvas").load(Selector.folder(""))
    inbox = doc.node("Inbox.md")
    assert (inbox.position.x, inbox.position.y) == (120, 80)
    assert any(n.type == "text" for n in doc.nodes)
    assert len(doc.edges) == 1


class TestClickCommands:
    def test_view_exit_codes(self, vault_path: Path):
        runner = CliRunner()
        ok = runner.invoke(cli, ["--vault", str(vault_path), "view", "folder:Projects", "--json"])
        assert ok.exit_code == 0

        bad = runner.invoke(cli, ["--vault", str(vault_path), "view", "nonsense"])
        assert bad.exit_code == 1

    def test_missing_vault(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--vault", str(tmp_path / "nope"), "summary"])
        assert result.exit_code != 0

    def test_summary_limit_range(self, vault_path: Path):
        result = CliRunner().invoke(cli, ["--vault", str(vault_path), "summary", "--limit", "50"])
        assert result.exit_code == 2

    def test_node_add_frame(self, vault_path: Path):
        runner = CliRunner()
        args = ["--vault", str(vault_path), "node", "add-frame", "folder:Projects", "Group", "--at", "10", "20"]
        assert runner.invoke(cli, args).exit_code == 0

        doc = DocumentStore(vault_path / ".vaultcanvas").load(Selector.folder("Projects"))
        frame = next(n for n in doc.nodes if n.type == "frame")
        assert (frame.position.x, frame.position.y) == (10, 20)
        assert frame.data == {"title": "Group"}

    def test_auto_detects_vault(self, vault_path: Path, monkeypatch):
        (vault_path / ".vaultcanvas").mkdir()
        monkeypatch.chdir(vault_path / "Projects")
        result = CliRunner().invoke(cli, ["summary", "--json"])
        assert result.exit_code == 0
        assert "Projects" in result.output
