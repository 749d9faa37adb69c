#!/usr/bin/env python3
"""
Unity scene record scanner.

Scene files (*.unity) are a stream of YAML documents, one per serialized object:

    --- !u!1 &100            GameObject
      m_Name: Player
    --- !u!4 &4              Transform
      m_GameObject: {fileID: 100}
      m_Father: {fileID: 0}
    --- !u!114 &7            MonoBehaviour
      m_Script: {fileID: 11500000, guid: 0123abcd, type: 3}

Only the boundary lines and a handful of top-level field prefixes are read, no
YAML parser is involved. Each open record tracks the fields it still waits for;
once all are found the rest of the document is ignored, and reaching the next
boundary (or the end of the file) closes the record. Unknown record kinds are
skipped as opaque blocks.
"""

import re

from audit_errors import PathError, StructuralError

BOUNDARY_PREFIX = "--- !u!"
BOUNDARY_RE = re.compile(r"^--- !u!(\d+) &(-?\d+)(?:\s+(\w+))?\s*$")
BINARY_MARKER = "\x00"

OBJECT_KIND = 1
TRANSFORM_KIND = 4
BEHAVIOUR_KIND = 114
RECT_TRANSFORM_KIND = 224

NAME_PREFIX = "  m_Name:"
GAME_OBJECT_PREFIX = "  m_GameObject: {fileID: "
FATHER_PREFIX = "  m_Father: {fileID: "
SCRIPT_PREFIX = "  m_Script:"
SCRIPT_RE = re.compile(r"^  m_Script: \{fileID: (-?\d+), guid: (\w+), type: (\d+)\}\s*$")

_NO_MATCH = object()


class SceneObject:
    def __init__(self, file_id, name=None):
        self.file_id = file_id
        self.name = name

    def __repr__(self):
        return f"SceneObject({self.file_id!r}, {self.name!r})"


class HierarchyNode:
    """One Transform. Owner and parent are raw fileIDs until the hierarchy is built."""

    def __init__(self, file_id, owner_id, parent_id, name=None):
        self.file_id = file_id
        self.owner_id = owner_id
        self.parent_id = parent_id
        self.name = name
        self.children = []

    def __repr__(self):
        return f"HierarchyNode({self.file_id!r}, owner={self.owner_id!r}, parent={self.parent_id!r}, name={self.name!r})"


class BehaviourReference:
    def __init__(self, record_id, guid):
        self.record_id = record_id
        self.guid = guid

    def __repr__(self):
        return f"BehaviourReference({self.record_id!r}, {self.guid!r})"


class SceneRecords:
    """Everything one scene pass collected, in file order."""

    def __init__(self, source):
        self.source = source
        self.objects = []
        self.nodes = []
        self.behaviours = []
        self.diagnostics = []
        self.skipped = 0


# -----------------------------
# Field extractors
# -----------------------------
def _extract_name(line):
    if not line.startswith(NAME_PREFIX):
        return _NO_MATCH
    rest = line[len(NAME_PREFIX):]
    if rest and not rest[0].isspace():
        return _NO_MATCH  # m_NameSomething
    return rest.strip()


def _file_id_extractor(prefix):
    def extract(line):
        if not line.startswith(prefix):
            return _NO_MATCH
        value = line[len(prefix):].strip()
        if value.endswith("}"):
            value = value[:-1]
        return int(value)
    return extract


def _extract_script(line):
    if not line.startswith(SCRIPT_PREFIX):
        return _NO_MATCH
    m = SCRIPT_RE.match(line)
    # {fileID: 0} and other shapes mean the script is missing
    return m.group(2) if m else None


FIELDS = {
    "name": ("m_Name", _extract_name),
    "game_object": ("m_GameObject", _file_id_extractor(GAME_OBJECT_PREFIX)),
    "father": ("m_Father", _file_id_extractor(FATHER_PREFIX)),
    "script": ("m_Script", _extract_script),
}

# kind -> (label, wanted fields, required fields)
OBJECT_SPEC = ("GameObject", ("name",), ())
TRANSFORM_SPEC = ("Transform", ("game_object", "father"), ("game_object", "father"))
BEHAVIOUR_SPEC = ("MonoBehaviour", ("script",), ("script",))


def is_boundary(line):
    return line == "---" or line.startswith("--- ")


def parse_boundary(line):
    """Return (kind, file_id, tag) for a `--- !u!` line, or None."""
    m = BOUNDARY_RE.match(line)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), m.group(3)


def text_lines(lines, source):
    """Pass lines through, refusing binary-serialized scenes (they contain NUL bytes)."""
    for line in lines:
        if BINARY_MARKER in line:
            raise StructuralError(source, "Not a text-serialized scene. Enable 'Force Text' serialization.")
        yield line


class _OpenRecord:
    def __init__(self, kind, file_id, line_no, spec):
        self.kind = kind
        self.file_id = file_id
        self.line_no = line_no
        self.label, wanted, self.required = spec
        self.pending = list(wanted)
        self.values = {}

    @property
    def done(self):
        return not self.pending

    def feed(self, line, line_no, source):
        for field in self.pending:
            extract = FIELDS[field][1]
            try:
                value = extract(line)
            except ValueError:
                raise StructuralError(source, f"Malformed {FIELDS[field][0]} on line {line_no}: {line.strip()}", self.file_id)
            if value is not _NO_MATCH:
                self.values[field] = value
                self.pending.remove(field)
                return


class RecordScanner:
    def __init__(self, source="<scene>", hierarchy_kinds=(TRANSFORM_KIND,)):
        self.source = str(source)
        self.specs = {OBJECT_KIND: OBJECT_SPEC, BEHAVIOUR_KIND: BEHAVIOUR_SPEC}
        for kind in hierarchy_kinds:
            self.specs[kind] = TRANSFORM_SPEC
        self.diagnostics = []
        self.skipped = 0

    def scan(self, lines):
        """Yield SceneObject, HierarchyNode and BehaviourReference records in file order."""
        current = None
        for line_no, raw in enumerate(lines, 1):
            line = raw.rstrip("\r\n")
            if is_boundary(line):
                if current is not None:
                    yield self._close(current, line_no)
                current = self._open(line, line_no)
                continue
            if current is None or current.done:
                continue
            current.feed(line, line_no, self.source)
        if current is not None:
            yield self._close(current, None)

    def _open(self, line, line_no):
        parsed = parse_boundary(line)
        if parsed is None:
            self.skipped += 1
            return None
        kind, file_id, tag = parsed
        spec = self.specs.get(kind)
        # stripped records are prefab placeholders without their own fields
        if spec is None or tag == "stripped":
            self.skipped += 1
            return None
        return _OpenRecord(kind, file_id, line_no, spec)

    def _close(self, rec, next_line_no):
        missing = [f for f in rec.required if f not in rec.values]
        if missing:
            where = f"before line {next_line_no}" if next_line_no else "before end of file"
            names = ", ".join(FIELDS[f][0] for f in missing)
            raise StructuralError(self.source, f"{rec.label} (line {rec.line_no}) has no {names} {where}", rec.file_id)

        if rec.kind == OBJECT_KIND:
            if "name" not in rec.values:
                self.diagnostics.append(f"{self.source} [&{rec.file_id}]: GameObject has no m_Name")
            return SceneObject(rec.file_id, rec.values.get("name"))
        if rec.kind == BEHAVIOUR_KIND:
            return BehaviourReference(rec.file_id, rec.values["script"])
        return HierarchyNode(rec.file_id, rec.values["game_object"], rec.values["father"])


def collect_records(lines, source="<scene>", hierarchy_kinds=(TRANSFORM_KIND,)):
    scanner = RecordScanner(source, hierarchy_kinds)
    records = SceneRecords(str(source))
    for record in scanner.scan(lines):
        if isinstance(record, SceneObject):
            records.objects.append(record)
        elif isinstance(record, HierarchyNode):
            records.nodes.append(record)
        else:
            records.behaviours.append(record)
    records.diagnostics = scanner.diagnostics
    records.skipped = scanner.skipped
    return records


def read_scene(path, hierarchy_kinds=(TRANSFORM_KIND,), source=None):
    """Scan a scene file from disk. `source` is the label used in messages."""
    source = str(source or path)
    try:
        with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
            return collect_records(text_lines(f, source), source, hierarchy_kinds)
    except OSError as e:
        raise PathError.from_os_error(e, "read scene")
