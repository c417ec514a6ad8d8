"""
Conversion Module

Maps every (well, field, channel) of a plate to its input frame and to
its place in the genotype group's output sequence, then runs the
ImageMagick conversions on a bounded worker pool.

Re-running over a partially converted plate only performs missing work.
"""
import signal
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterator, Optional

from ...config import ConversionSettings
from ...core.base import BaseProcessor
from ...core.errors import MissingInputFrame, TaskError
from ...core.genotypes import GenotypeTable
from ...core.naming import first_sequence_number
from ...core.plate import well_name
from .engine import ImageMagickEngine, remove_stale_staging
from .task import CancellationToken, ConversionReport, FrameTask, TaskResult, TaskState


# How often a blocked admission re-checks for cancellation
ADMISSION_POLL_SECONDS = 0.1

STOP_SIGNALS = tuple(
    getattr(signal, name) for name in ('SIGHUP', 'SIGINT', 'SIGTERM') if hasattr(signal, name)
)


class ConversionScheduler(BaseProcessor):
    """
    Plans and dispatches one conversion task per (well, field, channel).

    Task lifecycle: pending -> dispatched -> complete | failed, or directly
    to skipped (all tiles already present), missing (no input frame) or
    cancelled (stop requested before admission).
    """

    def __init__(self, settings: ConversionSettings, table: GenotypeTable,
                 engine: Optional[ImageMagickEngine] = None,
                 token: Optional[CancellationToken] = None,
                 dry_run: bool = False):
        """
        Args:
            settings: Resolved run settings
            table: Genotype labels for the plate
            engine: Conversion engine (ImageMagick by default)
            token: Cancellation token; a stop request drains running tasks
            dry_run: Classify tasks without running the engine
        """
        super().__init__(settings)
        self.table = table
        self.engine = engine or ImageMagickEngine(
            settings.executable, settings.out_depth, logger=self.logger
        )
        self.token = token or CancellationToken()
        self.dry_run = dry_run
        self._scan_map = settings.layout.scan_map()

    def tasks_for_well(self, row: int, col: int) -> Iterator[FrameTask]:
        """Tasks of one well, fields then channels"""
        s = self.settings
        index = s.layout.grid_index(row, col)
        label = self.table.label(index)
        rank = self.table.occurrence_rank(index)
        ordinal = int(self._scan_map[row, col])
        output_dir = s.output_dir / s.codec.group_dirname(label)

        for field in range(1, s.fields_per_well + 1):
            seq_start = first_sequence_number(rank, field, s.tiles_per_frame, s.fields_per_well)
            for channel in range(1, s.channel_count + 1):
                yield FrameTask(
                    row=row,
                    col=col,
                    label=label,
                    scan_ordinal=ordinal,
                    field=field,
                    channel=channel,
                    input_path=s.input_dir / s.codec.input_filename(
                        ordinal, field, channel, s.fields_per_well
                    ),
                    output_dir=output_dir,
                    output_template=s.codec.output_template(label, channel),
                    sequence_start=seq_start,
                    tile_count=s.tiles_per_frame,
                    contrast=s.contrasts[channel],
                    transform_ops=s.profile.transform_ops,
                )

    def plan(self) -> Iterator[FrameTask]:
        """All tasks in row, column, field, channel order"""
        for row, col in self.settings.layout.wells():
            yield from self.tasks_for_well(row, col)

    def process(self, **kwargs) -> Dict:
        """
        Convert the whole plate.

        Returns:
            Dict with status, stats and the ConversionReport
        """
        s = self.settings
        self._log_start("Conversion", s.input_dir)
        self.logger.info(
            f"  Plate: {s.layout.well_count} wells ({s.layout.rows}x{s.layout.cols}), "
            f"{s.fields_per_well} fields, {s.channel_count} channels"
        )
        self.logger.info(
            f"  Microscope: {s.profile.name} ({s.tiles_per_frame} tiles per frame), "
            f"{s.jobs} jobs"
        )

        if not self.dry_run:
            removed = remove_stale_staging(s.output_dir)
            if removed:
                self.logger.warning(f"Removed {removed} incomplete staging directories")

        report = self.run()

        self._log_complete("Conversion", s.output_dir, report.stats())
        return {
            'status': report.status,
            'stats': report.stats(),
            'report': report,
        }

    def run(self) -> ConversionReport:
        """Dispatch every task and wait for all of them to finish"""
        s = self.settings
        report = ConversionReport()
        futures: Dict[Future, FrameTask] = {}
        slots = threading.BoundedSemaphore(s.jobs)
        total_wells = s.layout.well_count

        with ThreadPoolExecutor(max_workers=s.jobs) as executor:
            for row, col in s.layout.wells():
                if not self.token.cancelled:
                    done = 100 * s.layout.grid_index(row, col) // total_wells
                    self.logger.info(f"Processing well {well_name(row, col)} ({done}%)")

                for task in self.tasks_for_well(row, col):
                    if self.token.cancelled:
                        report.add(TaskResult(task, TaskState.CANCELLED))
                        continue

                    result = self._classify(task)
                    if result is not None:
                        report.add(result)
                        continue

                    if not self._admit(slots):
                        report.add(TaskResult(task, TaskState.CANCELLED))
                        continue

                    future = executor.submit(self._execute, task)
                    report.dispatched += 1
                    future.add_done_callback(lambda _: slots.release())
                    futures[future] = task

            if self.token.cancelled:
                self.logger.warning(
                    f"Stop requested; waiting for {sum(not f.done() for f in futures)} running tasks"
                )
        # executor exit joins every dispatched task

        for future, task in futures.items():
            try:
                report.add(future.result())
            except Exception as e:
                self.logger.error(f"Unexpected error converting {task}: {e}", exc_info=True)
                report.add(TaskResult(task, TaskState.FAILED, e))

        report.cancelled = self.token.cancelled
        return report

    def _classify(self, task: FrameTask) -> Optional[TaskResult]:
        """Resolve tasks that need no engine call; None means dispatch"""
        if not task.input_path.is_file():
            error = MissingInputFrame(
                f'File "{task.input_path}" does not exist '
                f'(well: {task.well}, genotype: {task.label}).'
            )
            if not self.settings.quiet:
                self.logger.warning(str(error))
            return TaskResult(task, TaskState.MISSING, error)

        if not self.settings.overwrite and task.outputs_exist():
            self.logger.debug(f"Skipping {task}: all tiles present")
            return TaskResult(task, TaskState.SKIPPED)

        if self.dry_run:
            self.logger.info(f"Would convert {task}")
            return TaskResult(task, TaskState.PENDING)

        self._ensure_dir(task.output_dir)
        return None

    def _admit(self, slots: threading.BoundedSemaphore) -> bool:
        """Block until a worker is free; False if a stop was requested meanwhile"""
        while not slots.acquire(timeout=ADMISSION_POLL_SECONDS):
            if self.token.cancelled:
                return False
        if self.token.cancelled:
            slots.release()
            return False
        return True

    def _execute(self, task: FrameTask) -> TaskResult:
        self.logger.debug(f"Converting {task}")
        try:
            self.engine.run(task)
        except TaskError as e:
            self.logger.error(f"Conversion failed for {task}: {e}")
            return TaskResult(task, TaskState.FAILED, e)
        return TaskResult(task, TaskState.COMPLETE)


def install_stop_handlers(token: CancellationToken) -> Dict:
    """
    Cancel the token on SIGHUP/SIGINT/SIGTERM.

    Returns:
        Previous handlers, for restore_handlers()
    """
    def _handle_signal(_signum, _frame):
        token.cancel()

    previous = {}
    for sig in STOP_SIGNALS:
        previous[sig] = signal.signal(sig, _handle_signal)
    return previous


def restore_handlers(previous: Dict):
    for sig, handler in previous.items():
        signal.signal(sig, handler)
