"""
Artifact emission seam.

Platform code generation lives outside the compiler core. The core only
needs something that turns a program and its report into bytes; the
default emitter serializes both as JSON.
"""

from __future__ import annotations

import json
from typing import Protocol

from . import ir


class ArtifactEmitter(Protocol):
    """Turns an analyzed program into an opaque artifact."""

    def emit(
        self,
        program: ir.Program,
        report: ir.SecurityReport,
        target_platform: str,
        include_metadata: bool,
    ) -> bytes: ...


class JsonEmitter:
    """Default emitter: the program IR as compact JSON."""

    def __init__(self, compact: bool = True):
        self.compact = compact

    def emit(
        self,
        program: ir.Program,
        report: ir.SecurityReport,
        target_platform: str,
        include_metadata: bool,
    ) -> bytes:
        document: dict[str, object] = {
            "target": target_platform,
            "program": program.model_dump(mode="json"),
        }
        if include_metadata:
            document["permissions"] = sorted(report.required_permissions)
            document["entry_points"] = program.screen_names
        if self.compact:
            text = json.dumps(document, separators=(",", ":"), sort_keys=True)
        else:
            text = json.dumps(document, indent=2, sort_keys=True)
        return text.encode("utf-8")
