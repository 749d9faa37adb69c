import unittest
import os
import sys
import shutil
import tempfile

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import scene_scanner
from audit_errors import PathError, StructuralError
from scene_scanner import BehaviourReference, HierarchyNode, RecordScanner, SceneObject

SCENE = """%YAML 1.1
%TAG !u! tag:unity3d.com,2011:
--- !u!29 &1
OcclusionCullingSettings:
  m_ObjectHideFlags: 0
  m_Name: NotAnObject
--- !u!1 &100
GameObject:
  m_ObjectHideFlags: 0
  m_Component:
  - component: {fileID: 4}
  m_Layer: 0
  m_Name: Player
  m_TagString: Untagged
--- !u!4 &4
Transform:
  m_ObjectHideFlags: 0
  m_GameObject: {fileID: 100}
  m_LocalPosition: {x: 0, y: 0, z: 0}
  m_Children: []
  m_Father: {fileID: 0}
  m_RootOrder: 0
--- !u!114 &7
MonoBehaviour:
  m_ObjectHideFlags: 0
  m_GameObject: {fileID: 100}
  m_Enabled: 1
  m_Script: {fileID: 11500000, guid: 0123456789abcdef0123456789abcdef, type: 3}
  m_Name:
  m_EditorClassIdentifier:
"""


def scan(text, **kwargs):
    return list(RecordScanner("test.unity", **kwargs).scan(text.splitlines(True)))


class TestRecordScanner(unittest.TestCase):

    def test_scene_records_in_file_order(self):
        records = scan(SCENE)
        self.assertEqual(len(records), 3)
        obj, node, behaviour = records

        self.assertIsInstance(obj, SceneObject)
        self.assertEqual((obj.file_id, obj.name), (100, "Player"))

        self.assertIsInstance(node, HierarchyNode)
        self.assertEqual((node.file_id, node.owner_id, node.parent_id), (4, 100, 0))
        self.assertIsNone(node.name)
        self.assertEqual(node.children, [])

        self.assertIsInstance(behaviour, BehaviourReference)
        self.assertEqual(behaviour.record_id, 7)
        self.assertEqual(behaviour.guid, "0123456789abcdef0123456789abcdef")

    def test_unknown_kinds_are_opaque(self):
        scanner = RecordScanner("test.unity")
        records = list(scanner.scan(SCENE.splitlines(True)))
        # the m_Name inside the OcclusionCullingSettings block is never read
        self.assertNotIn("NotAnObject", [getattr(r, "name", None) for r in records])
        self.assertEqual(scanner.skipped, 1)

    def test_object_without_name_is_a_diagnostic(self):
        text = "--- !u!1 &100\nGameObject:\n  m_Layer: 0\n--- !u!1 &101\nGameObject:\n  m_Name: Other\n"
        scanner = RecordScanner("test.unity")
        records = list(scanner.scan(text.splitlines(True)))
        self.assertIsNone(records[0].name)
        self.assertEqual(records[1].name, "Other")
        self.assertEqual(len(scanner.diagnostics), 1)
        self.assertIn("&100", scanner.diagnostics[0])

    def test_name_keeps_everything_after_the_colon(self):
        records = scan("--- !u!1 &5\nGameObject:\n  m_Name:   Door: Left  \n")
        self.assertEqual(records[0].name, "Door: Left")

    def test_empty_name(self):
        records = scan("--- !u!1 &5\nGameObject:\n  m_Name:\n")
        self.assertEqual(records[0].name, "")

    def test_similar_prefixes_do_not_match(self):
        text = "--- !u!1 &5\nGameObject:\n    m_Name: Nested\n  m_NameHash: 12\n  m_Name: Real\n"
        self.assertEqual(scan(text)[0].name, "Real")

    def test_first_name_wins(self):
        text = "--- !u!1 &5\nGameObject:\n  m_Name: First\n  m_Name: Second\n"
        self.assertEqual(scan(text)[0].name, "First")

    def test_transform_missing_father_raises(self):
        text = "--- !u!4 &4\nTransform:\n  m_GameObject: {fileID: 100}\n--- !u!1 &100\nGameObject:\n  m_Name: A\n"
        with self.assertRaises(StructuralError) as ctx:
            scan(text)
        self.assertEqual(ctx.exception.record_id, 4)
        self.assertIn("m_Father", ctx.exception.message)
        self.assertIn("before line 4", ctx.exception.message)

    def test_transform_missing_field_at_end_of_file(self):
        with self.assertRaises(StructuralError) as ctx:
            scan("--- !u!4 &4\nTransform:\n  m_Father: {fileID: 0}\n")
        self.assertIn("m_GameObject", ctx.exception.message)
        self.assertIn("end of file", ctx.exception.message)

    def test_behaviour_without_script_field_raises(self):
        with self.assertRaises(StructuralError):
            scan("--- !u!114 &9\nMonoBehaviour:\n  m_Enabled: 1\n")

    def test_missing_script_has_no_guid(self):
        records = scan("--- !u!114 &9\nMonoBehaviour:\n  m_Script: {fileID: 0}\n")
        self.assertIsNone(records[0].guid)

    def test_malformed_file_id_raises(self):
        with self.assertRaises(StructuralError) as ctx:
            scan("--- !u!4 &4\nTransform:\n  m_GameObject: {fileID: abc}\n  m_Father: {fileID: 0}\n")
        self.assertEqual(ctx.exception.record_id, 4)

    def test_large_and_negative_ids(self):
        text = ("--- !u!4 &-8679921383154817045\nTransform:\n"
                "  m_GameObject: {fileID: 1234567890123456789}\n  m_Father: {fileID: -42}\n")
        node = scan(text)[0]
        self.assertEqual(node.file_id, -8679921383154817045)
        self.assertEqual(node.owner_id, 1234567890123456789)
        self.assertEqual(node.parent_id, -42)

    def test_stripped_records_are_skipped(self):
        text = "--- !u!4 &50 stripped\nTransform:\n  m_CorrespondingSourceObject: {fileID: 1}\n"
        self.assertEqual(scan(text), [])

    def test_rect_transforms_only_when_enabled(self):
        text = "--- !u!224 &8\nRectTransform:\n  m_GameObject: {fileID: 1}\n  m_Father: {fileID: 0}\n"
        self.assertEqual(scan(text), [])
        nodes = scan(text, hierarchy_kinds=(scene_scanner.TRANSFORM_KIND, scene_scanner.RECT_TRANSFORM_KIND))
        self.assertEqual(nodes[0].file_id, 8)

    def test_windows_line_endings(self):
        records = scan(SCENE.replace("\n", "\r\n"))
        self.assertEqual(records[0].name, "Player")
        self.assertEqual(records[2].guid, "0123456789abcdef0123456789abcdef")

    def test_parse_boundary(self):
        self.assertEqual(scene_scanner.parse_boundary("--- !u!1 &100"), (1, 100, None))
        self.assertEqual(scene_scanner.parse_boundary("--- !u!4 &5 stripped"), (4, 5, "stripped"))
        self.assertIsNone(scene_scanner.parse_boundary("--- junk"))


class TestReadScene(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def _write(self, name, text):
        path = os.path.join(self.tmp, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_read_scene_groups_records(self):
        records = scene_scanner.read_scene(self._write("Main.unity", SCENE), source="Assets/Scenes/Main.unity")
        self.assertEqual(records.source, "Assets/Scenes/Main.unity")
        self.assertEqual([o.name for o in records.objects], ["Player"])
        self.assertEqual([n.file_id for n in records.nodes], [4])
        self.assertEqual(len(records.behaviours), 1)
        self.assertEqual(records.skipped, 1)

    def test_binary_scene_rejected(self):
        path = self._write("Binary.unity", "UnityFS\x00\x00\x00binary\n")
        with self.assertRaises(StructuralError):
            scene_scanner.read_scene(path)

    def test_scene_without_yaml_header(self):
        text = ("--- !u!1 &100\nGameObject:\n  m_Name: Player\n"
                "--- !u!4 &4\nTransform:\n  m_GameObject: {fileID: 100}\n  m_Father: {fileID: 0}\n")
        records = scene_scanner.read_scene(self._write("NoHeader.unity", text))
        self.assertEqual([o.name for o in records.objects], ["Player"])
        self.assertEqual([(n.file_id, n.owner_id, n.parent_id) for n in records.nodes], [(4, 100, 0)])

    def test_empty_scene(self):
        records = scene_scanner.read_scene(self._write("Empty.unity", ""))
        self.assertEqual((records.objects, records.nodes, records.behaviours), ([], [], []))

    def test_missing_file_is_path_error(self):
        with self.assertRaises(PathError):
            scene_scanner.read_scene(os.path.join(self.tmp, "nope.unity"))


if __name__ == "__main__":
    unittest.main()
