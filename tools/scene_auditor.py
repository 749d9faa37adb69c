#!/usr/bin/env python3
import argparse
import os
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from audit_errors import InventoryError, PathError, StructuralError
from hierarchy_builder import build_hierarchy, count_nodes
from scene_report import dump_path_for, relative_posix, remove_stale_dump, write_dump, write_step_summary, write_unused_report
from scene_scanner import RECT_TRANSFORM_KIND, TRANSFORM_KIND, read_scene
from script_inventory import build_inventory
from usage_tracker import apply_references, referenced_guids

# Unity Scene Auditor
# Dumps the Transform hierarchy of every scene and lists scripts that no scene references.

SCENES_DIR = os.path.join("Assets", "Scenes")
SCRIPTS_DIR = os.path.join("Assets", "Scripts")
SCENE_GLOB = "*.unity"

EXIT_OK = 0
EXIT_PATH_ERROR = 3
EXIT_INVENTORY_ERROR = 4
EXIT_SCENE_ERRORS = 5


class SceneResult:
    def __init__(self, label, dump_path=None, node_count=0, scripts=0, error=None, unresolved=(), diagnostics=()):
        self.label = label
        self.dump_path = dump_path
        self.node_count = node_count
        self.scripts = scripts
        self.error = error
        self.unresolved = list(unresolved)
        self.diagnostics = list(diagnostics)

    @property
    def ok(self):
        return self.error is None


def resolve_dir(project_root, value, default):
    path = Path(value) if value else Path(default)
    return path if path.is_absolute() else Path(project_root) / path


def find_scenes(scenes_dir):
    return sorted(p for p in Path(scenes_dir).rglob(SCENE_GLOB) if p.is_file())


def process_scene(scene_path, inventory, project_root, scenes_dir, output_dir, hierarchy_kinds=(TRANSFORM_KIND,)):
    """Scan, rebuild and dump one scene. References count only if the whole scene is valid."""
    label = relative_posix(scene_path, project_root)
    dump_path = dump_path_for(scene_path, scenes_dir, output_dir)
    try:
        records = read_scene(scene_path, hierarchy_kinds, source=label)
        root = build_hierarchy(records.objects, records.nodes, label)
    except StructuralError as e:
        remove_stale_dump(dump_path)
        return SceneResult(label, error=e)

    unresolved = apply_references(records.behaviours, inventory, label)
    write_dump(root, dump_path)
    return SceneResult(
        label,
        dump_path=dump_path,
        node_count=count_nodes(root),
        scripts=len(referenced_guids(records.behaviours)),
        unresolved=unresolved,
        diagnostics=records.diagnostics,
    )


def run_audit(project_root, output_dir, scenes_dir=None, scripts_dir=None, assume_serialized_used=False,
              rect_transforms=False, console=None, quiet=False):
    console = console or Console()
    project_root = Path(project_root)
    if not project_root.is_dir():
        raise PathError(project_root, "Project directory does not exist")

    scenes_dir = resolve_dir(project_root, scenes_dir, SCENES_DIR)
    scripts_dir = resolve_dir(project_root, scripts_dir, SCRIPTS_DIR)
    if not scenes_dir.is_dir():
        raise PathError(scenes_dir, "Scenes directory does not exist")

    console.print(f"🔍 Auditing Scenes for: [bold]{escape(project_root.resolve().name)}[/bold]")

    # 1. Script inventory
    inventory = build_inventory(scripts_dir, assume_serialized_used=assume_serialized_used)
    seeded = sum(1 for e in inventory if e.used_by_scene)
    console.print(f"  📜 {len(inventory)} scripts indexed" + (f" ({seeded} assumed used)" if seeded else ""))

    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        raise PathError.from_os_error(e, "create output directory")

    # 2. Scenes
    hierarchy_kinds = (TRANSFORM_KIND, RECT_TRANSFORM_KIND) if rect_transforms else (TRANSFORM_KIND,)
    results = []
    for scene in find_scenes(scenes_dir):
        result = process_scene(scene, inventory, project_root, scenes_dir, output_dir, hierarchy_kinds)
        results.append(result)
        if not result.ok:
            console.print(f"  [red]❌ {escape(result.error.describe())}[/red]")
            continue
        if quiet:
            continue
        console.print(f"  ✅ {escape(result.label)}: {result.node_count} nodes, {result.scripts} scripts")
        for msg in result.diagnostics:
            console.print(f"     [yellow]⚠️ {escape(msg)}[/yellow]")
        for ref in result.unresolved:
            console.print(f"     [dim]- {escape(ref.describe())}[/dim]")

    # 3. Unused scripts
    report = write_unused_report(inventory, project_root, output_dir)
    return results, inventory, report


def print_summary(console, results, inventory, project_root, report):
    table = Table(title=f"Scenes: {len(results)}", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Scene", style="cyan", no_wrap=True)
    table.add_column("Nodes", justify="right")
    table.add_column("Status", justify="center")
    for r in results:
        status = "[green]✅ OK[/green]" if r.ok else "[red]❌ FAILED[/red]"
        table.add_row(escape(r.label), str(r.node_count) if r.ok else "-", status)
    console.print(table)

    unused = inventory.unused()
    if unused:
        console.print(f"  ⚠️ {len(unused)} scripts are not referenced by any scene:")
        for entry in unused:
            console.print(f"     - {escape(relative_posix(entry.file_path, project_root))}")
    else:
        console.print("  ✅ Every script is referenced by a scene.")
    if any(not r.ok for r in results):
        console.print("  [yellow]Scripts referenced only by failed scenes are reported as unused.[/yellow]")
    console.print(f"  📄 Report: {escape(str(report))}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Unity Scene Auditor")
    parser.add_argument("project", help="Path to the Unity project root")
    parser.add_argument("output", help="Directory for scene dumps and the unused-scripts report. "
                        "Dumps mirror the scene sub-folders (<output>/<folder>/<scene>.scene.dump), not one flat folder")
    parser.add_argument("--scenes-dir", help=f"Scenes folder, relative to the project (default: {SCENES_DIR})")
    parser.add_argument("--scripts-dir", help=f"Scripts folder, relative to the project (default: {SCRIPTS_DIR})")
    parser.add_argument("--assume-serialized-used", action="store_true",
                        help="Treat scripts with [SerializeField]/public fields as used")
    parser.add_argument("--rect-transforms", action="store_true", help="Include RectTransform (UI) nodes in the hierarchy")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors and the summary")
    args = parser.parse_args(argv)

    console = Console()
    try:
        results, inventory, report = run_audit(
            args.project, args.output,
            scenes_dir=args.scenes_dir, scripts_dir=args.scripts_dir,
            assume_serialized_used=args.assume_serialized_used,
            rect_transforms=args.rect_transforms, console=console, quiet=args.quiet,
        )
    except PathError as e:
        console.print(f"[bold red]❌ Path error:[/bold red] {escape(e.describe())}")
        return EXIT_PATH_ERROR
    except InventoryError as e:
        console.print(f"[bold red]❌ Inventory error:[/bold red] {escape(e.describe())}")
        return EXIT_INVENTORY_ERROR

    print_summary(console, results, inventory, args.project, report)

    if "GITHUB_STEP_SUMMARY" in os.environ:
        rows = [(r.label, r.node_count if r.ok else "-", "✅" if r.ok else "❌") for r in results]
        try:
            write_step_summary(os.environ["GITHUB_STEP_SUMMARY"], rows, inventory.unused(), args.project)
        except PathError as e:
            console.print(f"[bold red]❌ Path error:[/bold red] {escape(e.describe())}")
            return EXIT_PATH_ERROR

    if any(not r.ok for r in results):
        return EXIT_SCENE_ERRORS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
