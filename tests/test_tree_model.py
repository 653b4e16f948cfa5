"""
Tests cho core.tree_model - FileNode + TreeModel.

Verify:
1. Aggregate invariant (folder = tong children, file = own count)
2. Incremental propagate len root vs bulk recompute
3. Listener notification (loi cua listener khong lan ra ngoai)
"""

import gc
from typing import Dict, Tuple

from core.tree_model import FileNode, ModelChange, TreeModel
from core.utils.file_scanner import ScanResult


def build_result() -> Tuple[ScanResult, Dict[str, FileNode]]:
    """
    /r
      src/
        a.ts
        lib/
          b.ts
      README.md
    """
    root = FileNode(path="/r", name="r", is_dir=True)
    src = FileNode(path="/r/src", name="src", is_dir=True)
    lib = FileNode(path="/r/src/lib", name="lib", is_dir=True)
    a = FileNode(path="/r/src/a.ts", name="a.ts")
    b = FileNode(path="/r/src/lib/b.ts", name="b.ts")
    readme = FileNode(path="/r/README.md", name="README.md")

    root.add_child(src)
    root.add_child(readme)
    src.add_child(lib)
    src.add_child(a)
    lib.add_child(b)

    registry = {n.path: n for n in (root, src, lib, a, b, readme)}
    return ScanResult(root_node=root, registry=registry, file_count=3, dir_count=3), registry


def assert_aggregate_invariant(node: FileNode) -> None:
    for current in node.iter_subtree():
        if current.is_dir:
            assert current.aggregate_tokens == sum(
                child.aggregate_tokens for child in current.children
            )
        else:
            assert current.aggregate_tokens == current.token_count


class TestFileNode:
    def test_iter_subtree_pre_order(self):
        result, _ = build_result()
        paths = [n.path for n in result.root_node.iter_subtree()]
        assert paths == [
            "/r", "/r/src", "/r/src/lib", "/r/src/lib/b.ts", "/r/src/a.ts", "/r/README.md",
        ]

    def test_parent_la_weakref(self):
        parent = FileNode(path="/p", name="p", is_dir=True)
        child = FileNode(path="/p/c", name="c")
        parent.add_child(child)
        assert child.parent is parent

        del parent
        gc.collect()
        assert child.parent is None

    def test_node_id_duy_nhat(self):
        a = FileNode(path="/x", name="x")
        b = FileNode(path="/x", name="x")
        assert a.node_id != b.node_id
        assert a != b


class TestTreeModel:
    def test_replace_notify_va_registry(self):
        model = TreeModel()
        changes = []
        model.add_listener(changes.append)
        result, _ = build_result()

        model.replace(result)

        assert model.root is result.root_node
        assert len(model) == 6
        assert "/r/src/a.ts" in model
        assert model.get("/missing") is None
        assert sorted(model.file_paths()) == ["/r/README.md", "/r/src/a.ts", "/r/src/lib/b.ts"]
        assert changes == [ModelChange.TREE_REPLACED]

    def test_set_token_count_propagate(self):
        model = TreeModel()
        result, nodes = build_result()
        model.replace(result)

        assert model.set_token_count("/r/src/lib/b.ts", 30)
        assert model.set_token_count("/r/src/a.ts", 50)

        assert nodes["/r/src/lib"].aggregate_tokens == 30
        assert nodes["/r/src"].aggregate_tokens == 80
        assert nodes["/r"].aggregate_tokens == 80
        assert_aggregate_invariant(model.root)

    def test_set_token_count_khong_doi(self):
        model = TreeModel()
        result, _ = build_result()
        model.replace(result)

        assert model.set_token_count("/r/src/a.ts", 5)
        assert not model.set_token_count("/r/src/a.ts", 5)
        assert not model.set_token_count("/r/src", 5)
        assert not model.set_token_count("/r/unknown.ts", 5)

    def test_lan_dau_load_voi_count_0_la_thay_doi(self):
        model = TreeModel()
        result, nodes = build_result()
        model.replace(result)

        assert model.set_token_count("/r/README.md", 0)
        assert nodes["/r/README.md"].tokens_loaded

    def test_apply_token_counts_notify_mot_lan(self):
        model = TreeModel()
        result, nodes = build_result()
        model.replace(result)
        changes = []
        model.add_listener(changes.append)

        changed = model.apply_token_counts(
            [("/r/src/a.ts", 10), ("/r/src/lib/b.ts", 20), ("/r/README.md", 5)]
        )

        assert changed == 3
        assert changes == [ModelChange.TOKENS_CHANGED]
        assert nodes["/r"].aggregate_tokens == 35
        assert_aggregate_invariant(model.root)

    def test_apply_khong_thay_doi_thi_khong_notify(self):
        model = TreeModel()
        result, _ = build_result()
        model.replace(result)
        model.apply_token_counts([("/r/src/a.ts", 10)])
        changes = []
        model.add_listener(changes.append)

        assert model.apply_token_counts([("/r/src/a.ts", 10)]) == 0
        assert changes == []

    def test_bulk_apply_giu_invariant(self):
        root = FileNode(path="/big", name="big", is_dir=True)
        registry = {root.path: root}
        for d in range(10):
            folder = FileNode(path=f"/big/d{d}", name=f"d{d}", is_dir=True)
            root.add_child(folder)
            registry[folder.path] = folder
            for f in range(20):
                node = FileNode(path=f"/big/d{d}/f{f}", name=f"f{f}")
                folder.add_child(node)
                registry[node.path] = node

        model = TreeModel()
        model.replace(ScanResult(root_node=root, registry=registry))
        results = [(p, 2) for p in model.file_paths()]

        assert model.apply_token_counts(results) == 200
        assert root.aggregate_tokens == 400
        assert_aggregate_invariant(root)

    def test_selected_files(self):
        model = TreeModel()
        result, nodes = build_result()
        model.replace(result)
        nodes["/r/src/a.ts"].is_selected = True
        nodes["/r/src"].is_selected = True

        assert [n.path for n in model.selected_files()] == ["/r/src/a.ts"]

    def test_listener_loi_khong_lan_ra_ngoai(self):
        model = TreeModel()
        received = []

        def broken(change):
            raise RuntimeError("listener bug")

        model.add_listener(broken)
        model.add_listener(received.append)
        model.notify(ModelChange.SELECTION_CHANGED)

        assert received == [ModelChange.SELECTION_CHANGED]

    def test_remove_listener(self):
        model = TreeModel()
        received = []
        model.add_listener(received.append)
        model.add_listener(received.append)
        model.remove_listener(received.append)
        model.notify(ModelChange.TOKENS_CHANGED)
        assert received == []

    def test_clear(self):
        model = TreeModel()
        result, _ = build_result()
        model.replace(result)
        model.clear()
        assert model.root is None
        assert len(model) == 0
        assert model.selected_files() == []
