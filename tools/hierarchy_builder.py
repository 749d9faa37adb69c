#!/usr/bin/env python3
from audit_errors import StructuralError
from scene_scanner import HierarchyNode

ROOT_ID = 0
ROOT_NAME = "*ROOT*"


def make_root():
    return HierarchyNode(ROOT_ID, owner_id=ROOT_ID, parent_id=ROOT_ID, name=ROOT_NAME)


def build_hierarchy(objects, nodes, source="<scene>"):
    """Link scanned Transforms into one tree under a synthetic root.

    Transforms reference their GameObject and parent by fileID, often ahead of
    where that record appears in the file, so both lookups go through id
    indexes built before any linking. Siblings keep scan order.
    """
    root = make_root()

    names = {}
    for obj in objects:
        names.setdefault(obj.file_id, obj.name)

    index = {ROOT_ID: root}
    for node in nodes:
        if node.file_id in index:
            raise StructuralError(source, "Duplicate Transform fileID", node.file_id)
        index[node.file_id] = node

    for node in nodes:
        # GameObjects without m_Name simply leave the node unnamed
        node.name = names.get(node.owner_id)
        parent = index.get(node.parent_id)
        if parent is None:
            raise StructuralError(source, f"Transform parent &{node.parent_id} does not exist in this scene", node.file_id)
        parent.children.append(node)

    reached = count_nodes(root)
    if reached != len(nodes):
        orphans = _unreachable(root, nodes)
        raise StructuralError(source, f"{len(orphans)} Transform(s) form a parent cycle", orphans[0].file_id)

    return root


def _unreachable(root, nodes):
    seen = {id(n) for _, n in iter_depth_first(root)}
    return [n for n in nodes if id(n) not in seen]


def iter_depth_first(root):
    """Yield (depth, node) in pre-order. The root itself is not yielded; its children sit at depth 0."""
    stack = [(0, child) for child in reversed(root.children)]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        stack.extend((depth + 1, child) for child in reversed(node.children))


def count_nodes(root):
    return sum(1 for _ in iter_depth_first(root))
