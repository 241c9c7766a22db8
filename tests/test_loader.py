"""Tests for opening, rebuilding and editing views through the loader."""

import asyncio
import shutil
import threading
from pathlib import Path

import pytest

from conftest import write
from vaultcanvas.errors import FetchFailure, NodeNotFoundError, SelectorError, StoreWriteError
from vaultcanvas.models import Edge, Node, Position, Selector, ViewDocument
from vaultcanvas.views.loader import ViewLoader
from vaultcanvas.views.store import DocumentStore


class GatedLoader(ViewLoader):
    """Loader whose fetches wait until the test opens the gate."""

    gate: asyncio.Event

    async def fetch(self, selector):
        await self.gate.wait()
        return await super().fetch(selector)


def open_view(loader: ViewLoader, selector: Selector):
    return asyncio.run(loader.open(selector))


class TestOpen:
    def test_first_open_saves(self, loader: ViewLoader, store: DocumentStore):
        root = Selector.folder("")
        outcome = open_view(loader, root)

        assert outcome.changed is True
        assert outcome.saved is True
        assert outcome.error is None
        assert store.exists(root)
        assert [n.id for n in outcome.document.nodes] == ["folder:Projects", "Inbox.md", "photo.jpg"]
        assert outcome.document.updated is not None

    def test_second_open_is_unchanged(self, loader: ViewLoader, store: DocumentStore):
        root = Selector.folder("")
        first = open_view(loader, root)
        saved_text = store.path_for(root).read_text(encoding="utf-8")

        second = open_view(loader, root)
        assert second.changed is False
        assert second.saved is False
        assert second.document.updated == first.document.updated
        assert store.path_for(root).read_text(encoding="utf-8") == saved_text

    def test_fresh_loader_reads_stored_layout(self, loader: ViewLoader, source, store: DocumentStore):
        root = Selector.folder("")
        open_view(loader, root)
        loader.move_node(root, "Inbox.md", 120, 80)

        outcome = open_view(ViewLoader(source, store), root)
        assert outcome.changed is False
        assert outcome.document.node("Inbox.md").position == Position(120, 80)

    def test_content_change_keeps_position(self, loader: ViewLoader, vault_path: Path):
        root = Selector.folder("")
        open_view(loader, root)
        loader.move_node(root, "Inbox.md", 120, 80)
        write(vault_path / "Inbox.md", "# Renamed inbox\n")

        outcome = open_view(loader, root)
        node = outcome.document.node("Inbox.md")
        assert outcome.saved is True
        assert node.position == Position(120, 80)
        assert node.data["title"] == "Renamed inbox"

    def test_folder_node_carries_summary(self, loader: ViewLoader):
        doc = open_view(loader, Selector.folder("")).document
        data = doc.node("folder:Projects").data
        assert data["total_markdown"] == 3
        assert data["recent_markdown"][0]["path"] == "Projects/plan.md"

    def test_tag_and_search_views(self, loader: ViewLoader):
        tag = open_view(loader, Selector.tag("work")).document
        assert {n.id for n in tag.nodes} == {"Projects/plan.md", "Projects/Archive/deep/very-old.md"}
        assert tag.title == "#work"

        search = open_view(loader, Selector.search("friday")).document
        assert [n.id for n in search.nodes] == ["Projects/plan.md"]

    def test_store_read_runs_off_the_event_loop(self, loader: ViewLoader, monkeypatch: pytest.MonkeyPatch):
        read_threads = []
        original_load = loader.store.load

        def load(selector):
            read_threads.append(threading.get_ident())
            return original_load(selector)

        monkeypatch.setattr(loader.store, "load", load)
        open_view(loader, Selector.folder(""))
        assert read_threads
        assert threading.get_ident() not in read_threads

    def test_open_many(self, loader: ViewLoader):
        outcomes = asyncio.run(loader.open_many([Selector.folder(""), Selector.folder("Projects")]))
        assert [o.saved for o in outcomes] == [True, True]


class TestConcurrency:
    def test_overlapping_builds_only_latest_commits(self, source, store: DocumentStore):
        loader = GatedLoader(source, store)
        root = Selector.folder("")

        async def scenario():
            loader.gate = asyncio.Event()
            first = asyncio.create_task(loader.open(root))
            second = asyncio.create_task(loader.open(root))
            await asyncio.sleep(0)
            loader.gate.set()
            return await first, await second

        first, second = asyncio.run(scenario())
        assert first.stale is True
        assert first.document is None
        assert second.stale is False
        assert second.saved is True

    def test_edit_during_build_wins(self, source, store: DocumentStore):
        loader = GatedLoader(source, store)
        root = Selector.folder("")

        async def scenario():
            loader.gate = asyncio.Event()
            build = asyncio.create_task(loader.open(root))
            await asyncio.sleep(0)
            loader.add_text(root, "typed while loading", at=(900, 900))
            loader.gate.set()
            return await build

        outcome = asyncio.run(scenario())
        assert outcome.stale is True

        stored = store.load(root)
        assert [n.type for n in stored.nodes] == ["text"]
        assert stored.nodes[0].data == {"text": "typed while loading"}

        # The next build merges vault content around the user's text
        rebuilt = open_view(ViewLoader(source, store), root).document
        text = next(n for n in rebuilt.nodes if n.type == "text")
        assert text.position == Position(900, 900)
        assert rebuilt.node("Inbox.md") is not None


class TestFailures:
    def test_fetch_failure_keeps_last_good(self, loader: ViewLoader, vault_path: Path, store: DocumentStore):
        projects = Selector.folder("Projects")
        good = open_view(loader, projects).document
        saved_text = store.path_for(projects).read_text(encoding="utf-8")

        shutil.rmtree(vault_path / "Projects")
        outcome = open_view(loader, projects)

        assert isinstance(outcome.error, FetchFailure)
        assert outcome.saved is False
        assert [n.id for n in outcome.document.nodes] == [n.id for n in good.nodes]
        assert store.path_for(projects).read_text(encoding="utf-8") == saved_text

    def test_fetch_failure_without_history(self, loader: ViewLoader):
        outcome = open_view(loader, Selector.folder("Missing"))
        assert isinstance(outcome.error, FetchFailure)
        assert outcome.document is None

    def test_store_failure_keeps_session_document(
        self, loader: ViewLoader, vault_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        root = Selector.folder("")
        open_view(loader, root)
        write(vault_path / "New note.md", "# New\n")

        def fail(document):
            raise StoreWriteError("disk full")

        monkeypatch.setattr(loader.store, "save", fail)
        outcome = open_view(loader, root)

        assert isinstance(outcome.error, StoreWriteError)
        assert outcome.saved is False
        assert outcome.document.node("New note.md") is not None
        assert loader.current_document(root).node("New note.md") is not None

    def test_failed_edit_save_survives_rebuild(
        self, loader: ViewLoader, store: DocumentStore, monkeypatch: pytest.MonkeyPatch
    ):
        root = Selector.folder("")
        open_view(loader, root)

        def fail(document):
            raise StoreWriteError("read-only")

        with monkeypatch.context() as m:
            m.setattr(loader.store, "save", fail)
            with pytest.raises(StoreWriteError):
                loader.add_text(root, "keep me", at=(0, 900))

        outcome = open_view(loader, root)
        assert any(n.type == "text" for n in outcome.document.nodes)
        # Nothing else changed, but the store was behind the session copy
        assert outcome.saved is True
        assert any(n.type == "text" for n in store.load(root).nodes)

    def test_edit_store_failure_propagates(self, loader: ViewLoader, monkeypatch: pytest.MonkeyPatch):
        root = Selector.folder("")
        open_view(loader, root)

        def fail(document):
            raise StoreWriteError("read-only")

        monkeypatch.setattr(loader.store, "save", fail)
        with pytest.raises(StoreWriteError):
            loader.move_node(root, "Inbox.md", 5, 5)
        assert loader.current_document(root).node("Inbox.md").position == Position(5, 5)


class TestEdits:
    def test_move_missing_node(self, loader: ViewLoader):
        root = Selector.folder("")
        open_view(loader, root)
        with pytest.raises(NodeNotFoundError):
            loader.move_node(root, "nope.md", 0, 0)

    def test_added_nodes_do_not_overlap(self, loader: ViewLoader):
        root = Selector.folder("")
        open_view(loader, root)
        doc = loader.add_link(root, "https://example.com")
        link = next(n for n in doc.nodes if n.type == "link")
        assert link.data == {"url": "https://example.com", "title": "https://example.com"}
        assert link.position not in [n.position for n in doc.nodes if n.id != link.id]

    def test_user_nodes_survive_rebuild(self, loader: ViewLoader, vault_path: Path):
        root = Selector.folder("")
        open_view(loader, root)
        loader.add_text(root, "note to self", at=(0, 900))
        frame_doc = loader.add_frame(root, "Group", at=(900, 0))
        frame = next(n for n in frame_doc.nodes if n.type == "frame")
        assert frame.style == {"width": 600, "height": 400}

        (vault_path / "photo.jpg").unlink()
        doc = open_view(loader, root).document
        assert doc.node("photo.jpg") is None
        assert {n.type for n in doc.nodes} >= {"text", "frame"}

    def test_connect_and_prune(self, loader: ViewLoader, vault_path: Path):
        root = Selector.folder("")
        open_view(loader, root)
        doc = loader.connect(root, "Inbox.md", "photo.jpg", label="see")
        assert [(e.source, e.target, e.label) for e in doc.edges] == [("Inbox.md", "photo.jpg", "see")]

        (vault_path / "photo.jpg").unlink()
        assert open_view(loader, root).document.edges == []

    def test_connect_requires_both_ends(self, loader: ViewLoader):
        root = Selector.folder("")
        open_view(loader, root)
        with pytest.raises(NodeNotFoundError):
            loader.connect(root, "Inbox.md", "ghost")

    def test_remove_frame_frees_children(self, loader: ViewLoader, store: DocumentStore):
        canvas = store.create_canvas("Board").selector
        doc = store.load(canvas)
        doc.nodes = [
            Node(id="frame-1", type="frame", position=Position(100, 100)),
            Node(id="text-1", type="text", position=Position(10, 5), parent_id="frame-1", data={"text": "x"}),
        ]
        doc.edges = [Edge(id="e1", source="frame-1", target="text-1")]
        store.save(doc)

        result = loader.remove_node(canvas, "frame-1")
        assert [n.id for n in result.nodes] == ["text-1"]
        assert result.nodes[0].position == Position(110, 105)
        assert result.nodes[0].parent_id is None
        assert result.edges == []

    def test_removed_derived_node_returns(self, loader: ViewLoader):
        root = Selector.folder("")
        open_view(loader, root)
        loader.remove_node(root, "Inbox.md")
        assert open_view(loader, root).document.node("Inbox.md") is not None


class TestCanvas:
    def test_unknown_canvas(self, loader: ViewLoader):
        with pytest.raises(SelectorError):
            open_view(loader, Selector.canvas("missing"))
        with pytest.raises(SelectorError):
            loader.add_text(Selector.canvas("missing"), "x")

    def test_canvas_keeps_its_nodes(self, loader: ViewLoader, store: DocumentStore):
        canvas = store.create_canvas("Ideas").selector
        loader.add_text(canvas, "first idea")

        outcome = open_view(loader, canvas)
        assert outcome.changed is False
        assert [n.type for n in outcome.document.nodes] == ["text"]
        assert outcome.document.title == "Ideas"


def test_for_vault_uses_config(vault_path: Path):
    (vault_path / ".vaultcanvas").mkdir()
    (vault_path / ".vaultcanvas" / "config.yml").write_text("folder_limit: 1\n")
    loader = ViewLoader.for_vault(vault_path)
    doc = open_view(loader, Selector.folder("")).document
    assert [n.id for n in doc.nodes] == ["folder:Projects", "Inbox.md"]
    assert loader.store.exists(Selector.folder(""))


def test_empty_document_for_unseen_view(loader: ViewLoader):
    doc = loader.add_text(Selector.tag("later"), "placeholder", at=(0, 0))
    assert isinstance(doc, ViewDocument)
    assert doc.title == "#later"
