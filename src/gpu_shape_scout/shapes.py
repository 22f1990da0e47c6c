"""GPU shape catalogue.

The catalogue is the fixed list of instance shapes whose capacity is probed
on every poll.  It is loaded once at startup and handed to the capacity
report client, so changing the probed shapes never touches traversal logic.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShapeSpec:
    """One shape line item of a capacity report request."""

    name: str
    ocpus: float
    memory_in_gbs: float


DEFAULT_SHAPES: tuple[ShapeSpec, ...] = (
    # Large scale-out training, analytics, HPC
    ShapeSpec("BM.GPU.H100.8", 112.0, 2048.0),  # H100 80GB x 8
    ShapeSpec("BM.GPU4.8", 64.0, 2048.0),  # A100 80GB x 8
    ShapeSpec("BM.GPU.A100-v2.8", 128.0, 2048.0),  # A100 40GB x 8
    # Small training, inference, streaming, VDI
    ShapeSpec("VM.GPU.A10.1", 15.0, 240.0),
    ShapeSpec("VM.GPU.A10.2", 30.0, 480.0),
    ShapeSpec("BM.GPU.A10.4", 64.0, 1024.0),
    ShapeSpec("VM.GPU3.1", 6.0, 90.0),  # V100
    ShapeSpec("VM.GPU3.2", 12.0, 180.0),
    ShapeSpec("VM.GPU3.4", 24.0, 360.0),
    ShapeSpec("BM.GPU3.8", 52.0, 768.0),
)


class _ShapeEntry(BaseModel):
    name: str = Field(min_length=1)
    ocpus: float = Field(gt=0)
    memoryInGBs: float = Field(gt=0)


_entries_adapter = TypeAdapter(list[_ShapeEntry])


def parse_shape_catalogue(raw: object) -> tuple[ShapeSpec, ...]:
    """Validate decoded JSON and return it as a catalogue.

    Raises ``ValueError`` for an empty list, duplicate shape names, or
    entries with missing / non-positive sizes.
    """
    entries = _entries_adapter.validate_python(raw)
    if not entries:
        raise ValueError("Shape catalogue is empty")

    seen: set[str] = set()
    shapes: list[ShapeSpec] = []
    for entry in entries:
        if entry.name in seen:
            raise ValueError(f"Duplicate shape in catalogue: {entry.name}")
        seen.add(entry.name)
        shapes.append(ShapeSpec(entry.name, entry.ocpus, entry.memoryInGBs))
    return tuple(shapes)


def load_shape_catalogue(path: Path | str | None = None) -> tuple[ShapeSpec, ...]:
    """Return the shape catalogue from *path*, or the built-in defaults.

    The file holds a JSON list of ``{"name", "ocpus", "memoryInGBs"}``
    objects.
    """
    if path is None:
        return DEFAULT_SHAPES
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    shapes = parse_shape_catalogue(raw)
    logger.info("Loaded %d shapes from %s", len(shapes), path)
    return shapes
