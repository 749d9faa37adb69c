#!/usr/bin/env python3
import os

# Scene Auditor error taxonomy
# Structural problems abort one scene, inventory and path problems abort the run.


class AuditError(Exception):
    def __init__(self, source, message, record_id=None):
        self.source = str(source) if source is not None else None
        self.message = message
        self.record_id = record_id
        super().__init__(self.describe())

    def describe(self):
        where = self.source or "<unknown>"
        if self.record_id is not None:
            where += f" [&{self.record_id}]"
        return f"{where}: {self.message}"


class StructuralError(AuditError):
    """A scene record is incomplete or references a node that does not exist."""


class InventoryError(AuditError):
    """A script cannot be identified from its .meta file."""


class PathError(AuditError):
    """A required directory is missing or the filesystem refused an operation."""

    @classmethod
    def from_os_error(cls, exc, action="access"):
        return cls(exc.filename or "<filesystem>", f"Could not {action}: {os.strerror(exc.errno) if exc.errno else exc}")


class UnresolvedReference:
    """Behaviour record pointing at a script guid that is not in the inventory."""

    def __init__(self, source, record_id, guid):
        self.source = str(source)
        self.record_id = record_id
        self.guid = guid

    def describe(self):
        if self.guid is None:
            return f"{self.source} [&{self.record_id}]: MonoBehaviour has no script reference (missing script?)"
        return f"{self.source} [&{self.record_id}]: script guid {self.guid} is not a project script"

    def __repr__(self):
        return f"UnresolvedReference({self.source!r}, {self.record_id!r}, {self.guid!r})"
