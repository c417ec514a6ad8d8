"""
Base classes and utilities for conversion processors
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any

from ..config import ConversionSettings


_log_level = logging.INFO


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Setup logger with standard formatting"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level if level is not None else _log_level)
    return logger


def set_log_level(level: int):
    """Apply a level to existing and future loggers from setup_logger"""
    global _log_level
    _log_level = level
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(level)


class BaseProcessor(ABC):
    """
    Abstract base class for pipeline processors.

    Holds the resolved run settings and a per-class logger.
    """

    def __init__(self, settings: ConversionSettings):
        """
        Args:
            settings: Resolved, read-only run settings
        """
        self.settings = settings
        self.logger = setup_logger(self.__class__.__name__)

    @abstractmethod
    def process(self, *args, **kwargs) -> Dict[str, Any]:
        """
        Run the processor.

        Returns:
            Dict with at least a 'status' key and a 'stats' dict
        """
        pass

    def _ensure_dir(self, path: Path) -> Path:
        """Create a directory if needed; existing directories are fine"""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _log_start(self, step_name: str, input_dir: Path):
        self.logger.info(f"Starting {step_name}")
        self.logger.info(f"  Input: {input_dir}")

    def _log_complete(self, step_name: str, output_dir: Path, stats: Dict = None):
        self.logger.info(f"Completed {step_name}")
        self.logger.info(f"  Output: {output_dir}")
        if stats:
            for key, value in stats.items():
                self.logger.info(f"  {key}: {value}")


class CheckpointManager:
    """
    Record pipeline step state in a JSON file under the output directory.

    Conversion itself resumes from the files on disk; the checkpoint keeps
    the run history and which steps completed.
    """

    def __init__(self, checkpoint_dir: Path):
        self.checkpoint_dir = Path(checkpoint_dir)
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
        self.checkpoint_file = self.checkpoint_dir / "pipeline_state.json"
        self.logger = setup_logger("CheckpointManager")

    def save_state(self, step: str, status: str, metadata: Optional[Dict] = None):
        """
        Save the state of a step.

        Args:
            step: Step name
            status: 'in_progress', 'completed', 'failed' or 'cancelled'
            metadata: Optional step statistics
        """
        state = self.load_state() or {'completed_steps': [], 'history': []}

        step_record = {
            'step': step,
            'status': status,
            'timestamp': datetime.now().isoformat(),
            'metadata': metadata or {}
        }

        if status == 'completed':
            if step not in state['completed_steps']:
                state['completed_steps'].append(step)
            state['current_step'] = None
        else:
            # A re-run step is no longer complete until it finishes again
            if step in state['completed_steps']:
                state['completed_steps'].remove(step)
            state['current_step'] = step

        state['history'].append(step_record)
        state['last_updated'] = datetime.now().isoformat()

        with open(self.checkpoint_file, 'w') as f:
            json.dump(state, f, indent=2)

        self.logger.debug(f"Saved checkpoint: {step} - {status}")

    def load_state(self) -> Optional[Dict]:
        if self.checkpoint_file.exists():
            with open(self.checkpoint_file, 'r') as f:
                return json.load(f)
        return None

