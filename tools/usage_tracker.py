#!/usr/bin/env python3
from audit_errors import UnresolvedReference


def apply_references(behaviours, inventory, source="<scene>"):
    """Mark every inventory script referenced by these MonoBehaviour records.

    Built-in and package components are expected to miss the inventory; they
    come back as UnresolvedReference diagnostics instead of failing the scene.
    """
    unresolved = []
    for ref in behaviours:
        if ref.guid is None or not inventory.mark_used(ref.guid):
            unresolved.append(UnresolvedReference(source, ref.record_id, ref.guid))
    return unresolved


def referenced_guids(behaviours):
    """Distinct script guids referenced by a scene, first appearance first."""
    seen = {}
    for ref in behaviours:
        if ref.guid is not None:
            seen.setdefault(ref.guid, ref.record_id)
    return list(seen)
