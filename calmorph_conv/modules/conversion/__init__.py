from .processor import ConversionScheduler, install_stop_handlers, restore_handlers
from .engine import ImageMagickEngine, remove_stale_staging
from .task import CancellationToken, ConversionReport, FrameTask, TaskResult, TaskState

__all__ = [
    "ConversionScheduler",
    "install_stop_handlers",
    "restore_handlers",
    "ImageMagickEngine",
    "remove_stale_staging",
    "CancellationToken",
    "ConversionReport",
    "FrameTask",
    "TaskResult",
    "TaskState",
]
