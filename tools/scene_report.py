#!/usr/bin/env python3
import csv
import io
import os
from pathlib import Path

from audit_errors import PathError
from hierarchy_builder import iter_depth_first

DEPTH_MARKER = "--"
DUMP_SUFFIX = ".scene.dump"
UNUSED_REPORT = "UnusedScripts.csv"
UNUSED_HEADER = ("Relative Path", "GUID")


def render_dump(root):
    lines = [DEPTH_MARKER * depth + (node.name or "") for depth, node in iter_depth_first(root)]
    return "".join(line + "\n" for line in lines)


def dump_path_for(scene_path, scenes_dir, output_dir):
    """Output/<scene path under scenes dir>.scene.dump, so equally named scenes in different folders stay apart."""
    rel = Path(scene_path).relative_to(scenes_dir)
    return Path(output_dir) / rel.parent / (rel.stem + DUMP_SUFFIX)


def _write_text(path, text):
    try:
        os.makedirs(path.parent, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except OSError as e:
        raise PathError.from_os_error(e, "write")


def write_dump(root, dump_path):
    _write_text(Path(dump_path), render_dump(root))


def remove_stale_dump(dump_path):
    """A failed scene must not leave an older dump behind."""
    dump_path = Path(dump_path)
    try:
        if dump_path.is_file():
            dump_path.unlink()
            return True
    except OSError as e:
        raise PathError.from_os_error(e, "remove stale dump")
    return False


def relative_posix(path, project_root):
    return Path(os.path.relpath(path, project_root)).as_posix()


def render_unused_report(inventory, project_root):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(UNUSED_HEADER)
    for entry in inventory.unused():
        writer.writerow((relative_posix(entry.file_path, project_root), entry.guid))
    return buf.getvalue()


def write_unused_report(inventory, project_root, output_dir):
    path = Path(output_dir) / UNUSED_REPORT
    _write_text(path, render_unused_report(inventory, project_root))
    return path


def write_step_summary(summary_path, scene_rows, unused, project_root):
    """Append a markdown summary for CI (GITHUB_STEP_SUMMARY)."""
    try:
        with open(summary_path, "a", encoding="utf-8") as f:
            f.write("### 🎬 Scene Audit\n\n")
            f.write("| Scene | Nodes | Status |\n")
            f.write("| :--- | :---: | :---: |\n")
            for scene, nodes, status in scene_rows:
                f.write(f"| {scene} | {nodes} | {status} |\n")
            f.write(f"\n**Unused scripts:** `{len(unused)}`  \n\n")
            for entry in unused:
                f.write(f"- `{relative_posix(entry.file_path, project_root)}` ({entry.guid})\n")
    except OSError as e:
        raise PathError.from_os_error(e, "write step summary")
