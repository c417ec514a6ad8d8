"""
Conversion task model: one task per (well, field, channel)
"""
import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ...core.contrast import ContrastParams
from ...core.naming import SCENE_PLACEHOLDER
from ...core.plate import well_name


class TaskState(str, Enum):
    PENDING = 'pending'
    DISPATCHED = 'dispatched'
    COMPLETE = 'complete'
    FAILED = 'failed'
    SKIPPED = 'skipped'
    MISSING = 'missing'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class FrameTask:
    """
    One engine invocation: a single input frame cut into tile_count
    output tiles numbered from sequence_start.
    """
    row: int
    col: int
    label: str
    scan_ordinal: int
    field: int
    channel: int
    input_path: Path
    output_dir: Path
    output_template: str
    sequence_start: int
    tile_count: int
    contrast: ContrastParams
    transform_ops: Tuple[str, ...] = ()

    @property
    def well(self) -> str:
        return well_name(self.row, self.col)

    @property
    def sequence(self) -> range:
        return range(self.sequence_start, self.sequence_start + self.tile_count)

    def output_name(self, seq: int) -> str:
        return self.output_template.replace(SCENE_PLACEHOLDER, str(seq))

    @property
    def output_paths(self) -> List[Path]:
        return [self.output_dir / self.output_name(seq) for seq in self.sequence]

    def outputs_exist(self) -> bool:
        return all(p.is_file() for p in self.output_paths)

    def __str__(self):
        return (f"{self.input_path.name} (well {self.well}, field {self.field}, "
                f"channel {self.channel}) -> {self.label} #{self.sequence_start}")


@dataclass
class TaskResult:
    task: FrameTask
    state: TaskState
    error: Optional[Exception] = None


@dataclass
class ConversionReport:
    """Outcome of a scheduler run"""
    counts: Counter = field(default_factory=Counter)
    problems: List[TaskResult] = field(default_factory=list)
    cancelled: bool = False
    dispatched: int = 0

    def add(self, result: TaskResult):
        self.counts[result.state] += 1
        if result.state in (TaskState.FAILED, TaskState.MISSING):
            self.problems.append(result)

    def count(self, state: TaskState) -> int:
        return self.counts.get(state, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def status(self) -> str:
        if self.cancelled:
            return 'cancelled'
        if self.count(TaskState.FAILED):
            return 'failed'
        return 'success'

    def stats(self) -> Dict[str, int]:
        stats = {'tasks': self.total}
        for state in TaskState:
            stats[state.value] = self.count(state)
        # dispatched tasks end up complete or failed
        stats[TaskState.DISPATCHED.value] = self.dispatched
        return stats


class CancellationToken:
    """Cooperative stop flag shared by the scheduler and signal handlers"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
