"""Runtime configuration."""

from __future__ import annotations

from dataclasses import dataclass

from smiwatch._types import MemoryType


@dataclass(frozen=True)
class SmiwatchConfig:
    """Immutable runtime configuration."""

    sample_interval_ms: int = 1000
    max_workers: int = 1
    buffer_size: int = 256
    batch_size: int = 64
    flush_interval_ms: int = 5000
    memory_type: MemoryType = MemoryType.VRAM
