"""
ImageMagick engine: cuts one input frame into numbered output tiles
"""
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from ...core.errors import ConversionEngineFailure
from .task import FrameTask


STAGING_PREFIX = '.staging-'


class ImageMagickEngine:
    """
    Runs ImageMagick `convert` for a single task.

    Tiles are written into a staging directory next to their final
    location and moved into place only once the whole invocation has
    succeeded, so an interrupted task never leaves a set of tiles that
    looks complete.
    """

    def __init__(self, executable: str = 'convert', out_depth: int = 8,
                 logger: Optional[logging.Logger] = None):
        self.executable = executable
        self.out_depth = out_depth
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def check_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def build_command(self, task: FrameTask, output_dir: Path) -> List[str]:
        return [
            self.executable,
            str(task.input_path),
            '-quiet',
            *task.contrast.to_args(),
            '-depth', str(self.out_depth),
            *task.transform_ops,
            '-scene', str(task.sequence_start),
            str(Path(output_dir) / task.output_template),
        ]

    def run(self, task: FrameTask):
        """
        Convert one frame.

        Raises:
            ConversionEngineFailure: If convert fails or does not produce
                exactly the expected tiles
        """
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=task.output_dir))
        try:
            cmd = self.build_command(task, staging)
            self.logger.debug(f"Running: {' '.join(cmd)}")
            self._invoke(cmd)

            expected = {task.output_name(seq) for seq in task.sequence}
            produced = {p.name for p in staging.iterdir()}
            if produced != expected:
                missing = sorted(expected - produced)
                unexpected = sorted(produced - expected)
                raise ConversionEngineFailure(
                    f"{task.input_path.name}: expected {task.tile_count} tiles, "
                    f"got {len(produced)} (missing: {missing[:3]}, unexpected: {unexpected[:3]})"
                )

            for name in sorted(expected):
                os.replace(staging / name, task.output_dir / name)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _invoke(self, cmd: List[str]):
        # Own session: a terminal Ctrl+C stops dispatch but not running conversions
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True,
                           start_new_session=True)
        except subprocess.CalledProcessError as e:
            raise ConversionEngineFailure(
                f"{self.executable} exited with status {e.returncode}: {(e.stderr or '').strip()}"
            ) from e
        except FileNotFoundError as e:
            raise ConversionEngineFailure(
                f"{self.executable} not found. This tool requires ImageMagick (v6)."
            ) from e


def remove_stale_staging(output_dir: Path) -> int:
    """Delete staging directories left behind by an interrupted run"""
    removed = 0
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return removed
    for staging in output_dir.glob(f'*/{STAGING_PREFIX}*'):
        if staging.is_dir():
            shutil.rmtree(staging)
            removed += 1
    return removed
