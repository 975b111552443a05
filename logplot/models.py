"""Extraction output model: samples and blocks."""

from dataclasses import dataclass, field
from typing import NamedTuple


class Sample(NamedTuple):
    ts: float      # relative to the baseline timestamp
    value: float


@dataclass
class Block:
    fields: dict[str, list[Sample]] = field(default_factory=dict)
    ts: float = 0.0


def block_to_dict(block: Block) -> dict:
    """Serialize as ``{field: [[ts, val], ...], ..., "ts": ts}``."""
    data = {name: [[s.ts, s.value] for s in samples] for name, samples in block.fields.items()}
    data["ts"] = block.ts
    return data
