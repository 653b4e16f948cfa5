"""
Tests cho ChangeReconciler.

Verify:
1. classify_batch: NOOP / DROPPED / FULL_RESCAN / INCREMENTAL
2. Full rescan giu selection cua cac file con ton tai
3. Incremental recount (invalidate cache truoc khi dem)
4. Sua .gitignore -> full rescan voi rules moi
5. Rescan moi cancel rescan dang chay
"""

import threading
from pathlib import Path

import pytest

from conftest import FakeTokenCounter, make_tree, words
from core.ignore_engine import build_ignore_engine
from core.tree_model import TreeModel
from services.change_reconciler import (
    ChangeReconciler,
    ReconcileAction,
    classify_batch,
    is_ignore_source,
)
from services.interfaces.file_watcher_service import ChangeEvent, ChangeKind
from services.selection_coordinator import SelectionCoordinator

WAIT = 10


def event(path, kind=ChangeKind.MODIFIED, dest=None) -> ChangeEvent:
    return ChangeEvent(path=str(path), kind=kind, dest_path=dest)


class Workspace:
    """Model + coordinator + reconciler cho 1 root (khong co watcher)."""

    def __init__(self, root: Path, owner, counter: FakeTokenCounter, engine_factory=None):
        self.root = root
        self.counter = counter
        self.model = TreeModel()
        self.coordinator = SelectionCoordinator(self.model, counter, owner)
        self.reconciler = ChangeReconciler(
            root,
            self.model,
            self.coordinator,
            counter,
            owner,
            engine_factory or (lambda: build_ignore_engine(root)),
        )

    def path(self, rel: str) -> str:
        return str(self.root / rel)

    def shutdown(self) -> None:
        self.reconciler.shutdown()
        self.coordinator.shutdown()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    make_tree(tmp_path, {
        "src/a.ts": words(50),
        "src/b.ts": words(30),
        "src/util/c.ts": words(5),
        "README.md": words(7),
        "node_modules/pkg/index.js": words(1000),
    })
    return tmp_path.resolve()


@pytest.fixture
def workspace(project: Path, owner, fake_counter):
    ws = Workspace(project, owner, fake_counter)
    handle = ws.reconciler.refresh(WAIT)
    assert handle.is_done()
    assert handle.error is None
    yield ws
    ws.shutdown()


class TestClassifyBatch:
    def test_rong_la_noop(self):
        assert classify_batch([]) is ReconcileAction.NOOP

    def test_batch_qua_lon_bi_drop(self):
        events = [event(f"/r/f{i}.py") for i in range(101)]
        assert classify_batch(events, 100) is ReconcileAction.DROPPED
        assert classify_batch(events[:100], 100) is ReconcileAction.INCREMENTAL

    @pytest.mark.parametrize(
        "kind", [ChangeKind.CREATED, ChangeKind.DELETED, ChangeKind.RENAMED, ChangeKind.UNKNOWN]
    )
    def test_thay_doi_cau_truc_la_full_rescan(self, kind):
        events = [event("/r/a.py"), event("/r/b.py", kind)]
        assert classify_batch(events) is ReconcileAction.FULL_RESCAN

    def test_chi_modified_la_incremental(self):
        events = [event("/r/a.py"), event("/r/b.py")]
        assert classify_batch(events) is ReconcileAction.INCREMENTAL

    def test_sua_ignore_file_la_full_rescan(self):
        root = Path("/r")
        assert classify_batch([event("/r/.gitignore")], root=root) is ReconcileAction.FULL_RESCAN
        assert classify_batch([event("/r/.ignore")], root=root) is ReconcileAction.FULL_RESCAN
        assert (
            classify_batch([event("/r/.git/info/exclude")], root=root)
            is ReconcileAction.FULL_RESCAN
        )
        # .gitignore long ben trong khong phai source
        assert classify_batch([event("/r/src/.gitignore")], root=root) is ReconcileAction.INCREMENTAL

    def test_is_ignore_source(self):
        root = Path("/r")
        assert is_ignore_source("/r/.gitignore", root)
        assert not is_ignore_source("/other/.gitignore", root)
        assert not is_ignore_source(None, root)
        assert not is_ignore_source("/r/.gitignore", None)


class TestFullRescan:
    def test_refresh_dem_tokens_moi_file(self, workspace):
        model = workspace.model
        assert model.get(workspace.path("src/a.ts")).token_count == 50
        assert model.get(workspace.path("node_modules")) is None
        assert model.root.aggregate_tokens == 92
        assert all(node.tokens_loaded for node in model.file_nodes())
        assert workspace.reconciler.ignore_engine is not None

    def test_rescan_giu_selection_file_con_ton_tai(self, workspace):
        coordinator = workspace.coordinator
        coordinator.toggle_selection(workspace.path("src"))
        assert coordinator.wait_idle(WAIT)
        assert coordinator.total_tokens == 85

        Path(workspace.path("src/b.ts")).unlink()
        Path(workspace.path("src/new.ts")).write_text(words(3), encoding="utf-8")

        handle = workspace.reconciler.refresh(WAIT)
        assert handle.error is None

        assert coordinator.snapshot() == [workspace.path("src/a.ts"), workspace.path("src/util/c.ts")]
        assert coordinator.total_tokens == 55
        # Folder giu trang thai cu, file moi khong tu dong duoc chon
        assert coordinator.is_selected(workspace.path("src"))
        assert coordinator.is_selected(workspace.path("src/util"))
        assert not coordinator.is_selected(workspace.path("src/new.ts"))
        assert workspace.model.get(workspace.path("src/new.ts")).token_count == 3
        assert workspace.model.get(workspace.path("src/b.ts")) is None

    def test_rescan_chi_bo_path_da_xoa(self, workspace):
        coordinator = workspace.coordinator
        src = workspace.path("src")
        b = workspace.path("src/b.ts")
        coordinator.toggle_selection(src)
        assert coordinator.wait_idle(WAIT)
        before = coordinator.selected_paths

        Path(b).unlink()
        action = workspace.reconciler.handle_batch([event(b, ChangeKind.DELETED)])
        assert action is ReconcileAction.FULL_RESCAN
        assert workspace.reconciler.wait_idle(WAIT)

        assert coordinator.selected_paths == before - {b}
        # Root chua tung duoc chon -> khong bi danh dau sau rescan
        assert not coordinator.is_selected(str(workspace.root))
        assert coordinator.total_tokens == 55

        # Toggle src lan nua bo chon toan bo subtree
        coordinator.toggle_selection(src)
        assert coordinator.wait_idle(WAIT)
        assert coordinator.selected_paths == set()
        assert coordinator.total_tokens == 0

    def test_handle_batch_created_trigger_rescan(self, workspace):
        Path(workspace.path("docs")).mkdir()
        Path(workspace.path("docs/guide.md")).write_text(words(4), encoding="utf-8")

        action = workspace.reconciler.handle_batch(
            [event(workspace.path("docs/guide.md"), ChangeKind.CREATED)]
        )
        assert action is ReconcileAction.FULL_RESCAN
        assert workspace.reconciler.wait_idle(WAIT)
        assert workspace.model.get(workspace.path("docs/guide.md")) is not None
        assert workspace.model.root.aggregate_tokens == 96

    def test_batch_bi_drop_khong_rescan(self, workspace):
        before = workspace.reconciler.current_rescan
        events = [event(workspace.path(f"f{i}.ts"), ChangeKind.CREATED) for i in range(101)]

        assert workspace.reconciler.handle_batch(events) is ReconcileAction.DROPPED
        assert workspace.reconciler.current_rescan is before

    def test_sua_gitignore_rescan_voi_rules_moi(self, workspace):
        Path(workspace.path(".gitignore")).write_text("*.md\n", encoding="utf-8")

        action = workspace.reconciler.handle_batch([event(workspace.path(".gitignore"))])
        assert action is ReconcileAction.FULL_RESCAN
        assert workspace.reconciler.wait_idle(WAIT)

        assert workspace.model.get(workspace.path("README.md")) is None
        assert workspace.model.root.aggregate_tokens == 85
        assert workspace.reconciler.ignore_engine.is_ignored("README.md", False)

    def test_engine_factory_loi(self, project, owner, fake_counter):
        def broken_factory():
            raise ValueError("bad rules")

        ws = Workspace(project, owner, fake_counter, engine_factory=broken_factory)
        try:
            handle = ws.reconciler.refresh(WAIT)
            assert handle.is_done()
            assert isinstance(handle.error, ValueError)
            assert ws.model.root is None
        finally:
            ws.shutdown()

    def test_rescan_moi_cancel_rescan_cu(self, project, owner):
        gate = threading.Event()
        counter = FakeTokenCounter(gate=gate)
        ws = Workspace(project, owner, counter)
        try:
            first = ws.reconciler.full_rescan()
            assert counter.started.wait(WAIT)

            second = ws.reconciler.full_rescan()
            assert first.is_cancelled()
            assert ws.reconciler.current_rescan is second

            gate.set()
            assert second.wait(WAIT)
            assert first.wait(WAIT)
            assert second.error is None
            assert ws.model.root.aggregate_tokens == 92
        finally:
            gate.set()
            ws.shutdown()


class TestIncremental:
    def test_modified_recount_va_total(self, workspace):
        readme = workspace.path("README.md")
        workspace.coordinator.toggle_selection(readme)
        assert workspace.coordinator.wait_idle(WAIT)
        assert workspace.coordinator.total_tokens == 7

        Path(readme).write_text(words(20), encoding="utf-8")
        action = workspace.reconciler.handle_batch([event(readme), event(readme)])

        assert action is ReconcileAction.INCREMENTAL
        assert workspace.reconciler.wait_idle(WAIT)
        assert workspace.counter.invalidated == [readme]
        assert workspace.coordinator.total_tokens == 20
        assert workspace.model.root.aggregate_tokens == 105

    def test_modified_file_khong_co_trong_tree_la_noop(self, workspace):
        ignored = workspace.path("node_modules/pkg/index.js")
        assert workspace.reconciler.handle_batch([event(ignored)]) is ReconcileAction.NOOP
        assert workspace.counter.invalidated == []

    def test_incremental_update_truc_tiep(self, workspace):
        a = workspace.path("src/a.ts")
        Path(a).write_text(words(10), encoding="utf-8")

        handle = workspace.reconciler.incremental_update([a, workspace.path("src")])
        assert handle is not None
        assert handle.wait(WAIT)
        assert workspace.model.get(a).token_count == 10
        assert workspace.model.get(workspace.path("src")).aggregate_tokens == 45

    def test_rescan_cancel_incremental(self, workspace):
        gate = threading.Event()
        workspace.counter.gate = gate
        workspace.counter.started.clear()
        try:
            handle = workspace.reconciler.incremental_update([workspace.path("src/a.ts")])
            assert workspace.counter.started.wait(WAIT)

            rescan = workspace.reconciler.full_rescan()
            assert handle.is_cancelled()
            gate.set()
            assert rescan.wait(WAIT)
            assert handle.wait(WAIT)
        finally:
            gate.set()
