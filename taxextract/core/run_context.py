"""Mutable state for one document's pipeline run.

Extractors and pipelines are reusable across documents; everything that
accumulates while a single document is processed lives here instead, so
concurrent runs never share state:
- errors: recovered errors (classification fallback), surfaced as warnings
- timings: per-stage milliseconds
- progress: emitter for the caller's progress callback
- plan: the chunk plan chosen for the document, set by the extractor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taxextract.core.errors import PipelineErrors
from taxextract.core.progress import ProgressEmitter

if TYPE_CHECKING:
    from taxextract.core.chunked_extractor import ChunkPlan


@dataclass
class RunContext:
    errors: PipelineErrors = field(default_factory=PipelineErrors)
    timings: dict[str, float] = field(default_factory=dict)
    progress: ProgressEmitter = field(default_factory=ProgressEmitter)
    plan: ChunkPlan | None = None
