#!/usr/bin/env python3
import os
import re
from pathlib import Path

from audit_errors import InventoryError, PathError

SCRIPT_GLOB = "*.cs"
META_SUFFIX = ".meta"
GUID_PREFIX = "guid: "

# Fields Unity serializes into scenes: [SerializeField] or public instance fields.
SERIALIZE_FIELD_RE = re.compile(r"\[\s*(?:UnityEngine\.)?SerializeField\s*[\],]")
PUBLIC_FIELD_RE = re.compile(
    r"^\s*public\s+(?!(?:static|const|readonly|class|struct|enum|interface|delegate|event|abstract|override|virtual|void|partial)\b)"
    r"[\w<>\[\],.? ]+?\s+\w+\s*(?:=(?!>)[^;]*)?;",
    re.MULTILINE,
)


class ScriptEntry:
    def __init__(self, guid, file_path, exposes_state=False, used_by_scene=False):
        self.guid = guid
        self.file_path = Path(file_path)
        self.exposes_state = exposes_state
        self.used_by_scene = used_by_scene

    def __repr__(self):
        return f"ScriptEntry({self.guid!r}, {str(self.file_path)!r}, used={self.used_by_scene})"


class ScriptInventory:
    """All project scripts keyed by guid. Shared by every scene pass of a run."""

    def __init__(self, entries=()):
        self._by_guid = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry):
        other = self._by_guid.get(entry.guid)
        if other is not None:
            raise InventoryError(entry.file_path, f"guid {entry.guid} is already used by {other.file_path}")
        self._by_guid[entry.guid] = entry

    def get(self, guid):
        return self._by_guid.get(guid)

    def mark_used(self, guid):
        """Flag the script with this guid as used. Returns False if no project script has it."""
        entry = self._by_guid.get(guid)
        if entry is None:
            return False
        entry.used_by_scene = True
        return True

    def unused(self):
        return [e for e in self if not e.used_by_scene]

    def __iter__(self):
        return iter(self._by_guid.values())

    def __len__(self):
        return len(self._by_guid)

    def __contains__(self, guid):
        return guid in self._by_guid


def read_meta_guid(meta_path):
    """Return the guid from a .meta file, or None if it does not declare one."""
    with open(meta_path, "r", encoding="utf-8-sig", errors="replace") as f:
        for line in f:
            line = line.rstrip("\r\n")
            if line.startswith(GUID_PREFIX):
                return line[len(GUID_PREFIX):].strip() or None
            # guid sits in the header, before importer sections like "MonoImporter:"
            if line and not line[0].isspace() and line.endswith(":"):
                return None
    return None


def exposes_state(source_text):
    """Heuristic: does the script declare fields the editor can assign in a scene?"""
    return bool(SERIALIZE_FIELD_RE.search(source_text) or PUBLIC_FIELD_RE.search(source_text))


def build_inventory(scripts_dir, assume_serialized_used=False):
    """Collect every script under scripts_dir with the guid from its .meta file.

    With assume_serialized_used, scripts exposing editor-assignable fields start
    out marked as used; scene references still mark the rest.
    """
    scripts_dir = Path(scripts_dir)
    if not scripts_dir.is_dir():
        raise PathError(scripts_dir, "Scripts directory does not exist")

    inventory = ScriptInventory()
    for script in sorted(scripts_dir.rglob(SCRIPT_GLOB)):
        if not script.is_file():
            continue
        meta = script.with_name(script.name + META_SUFFIX)
        if not meta.is_file():
            raise InventoryError(script, f"Missing {meta.name}")
        try:
            guid = read_meta_guid(meta)
            source = script.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as e:
            raise InventoryError(script, f"Could not read: {os.strerror(e.errno) if e.errno else e}")
        if guid is None:
            raise InventoryError(meta, "No guid field")

        exposed = exposes_state(source)
        inventory.add(ScriptEntry(guid, script, exposes_state=exposed, used_by_scene=exposed and assume_serialized_used))
    return inventory
