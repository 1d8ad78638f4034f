"""Use cases orchestrating record assembly and sink dispatch."""

from __future__ import annotations

from .assemble import RecordAssembler, create_record_assembler
from .dispatch import CaptureDispatcher, render_description

__all__ = ["CaptureDispatcher", "RecordAssembler", "create_record_assembler", "render_description"]
