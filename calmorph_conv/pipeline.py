"""
CalMorph Conversion Orchestrator

Main entry point for converting a plate: builds the run settings, loads
the plate table, converts every frame, then validates the output.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Config, ConversionSettings
from .core.base import CheckpointManager, setup_logger
from .core.errors import MissingPlateData
from .core.genotypes import GenotypeTable
from .modules import (
    CancellationToken,
    ConversionScheduler,
    ImageMagickEngine,
    OutputValidator,
)


class Pipeline:
    """
    Conversion pipeline.

    Steps:
    1. convert - cut input frames into genotype-grouped tiles
    2. validate - check tile numbering in every group directory
    """

    STEPS = ['convert', 'validate']

    def __init__(self, config: Optional[Config] = None, config_file: Optional[Path] = None,
                 engine: Optional[ImageMagickEngine] = None,
                 token: Optional[CancellationToken] = None):
        """
        Args:
            config: Configuration object
            config_file: Path to configuration file (alternative to config)
            engine: Conversion engine override
            token: Cancellation token shared with signal handlers
        """
        if config_file:
            self.config = Config(config_file)
        elif config:
            self.config = config
        else:
            self.config = Config()

        self.engine = engine
        self.token = token or CancellationToken()
        self.logger = setup_logger("Pipeline")

    def prepare(self, input_dir: Optional[Path] = None,
                output_dir: Optional[Path] = None,
                plate_csv: Optional[Path] = None):
        """
        Resolve settings and load the plate table.

        Every configuration error is raised here, before any conversion.

        Returns:
            Tuple of (ConversionSettings, GenotypeTable)
        """
        settings = ConversionSettings.from_config(
            self.config, input_dir=input_dir, output_dir=output_dir, plate_csv=plate_csv
        )
        if settings.plate_csv is None:
            raise MissingPlateData("No .csv plate ID file was given")
        table = GenotypeTable.load(settings.plate_csv, settings.layout, settings.genotype_column)
        return settings, table

    def run(self,
            input_dir: Optional[Path] = None,
            output_dir: Optional[Path] = None,
            plate_csv: Optional[Path] = None,
            steps: Optional[List[str]] = None,
            dry_run: bool = False) -> Dict[str, Any]:
        """
        Run the pipeline.

        Args:
            input_dir: Directory of input TIFF frames
            output_dir: Root for genotype directories (defaults to input_dir)
            plate_csv: Plate table
            steps: Steps to run (default: all)
            dry_run: Plan the conversion without running ImageMagick

        Returns:
            Dict with pipeline results
        """
        settings, table = self.prepare(input_dir, output_dir, plate_csv)
        steps = self._resolve_steps(steps, dry_run)

        output_dir = settings.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        checkpoint = CheckpointManager(output_dir / '.calmorph')
        self.config.save(checkpoint.checkpoint_dir / 'config.yaml')

        self.logger.info("Pipeline started")
        self.logger.info(f"  Input: {settings.input_dir}")
        self.logger.info(f"  Output: {output_dir}")
        self.logger.info(f"  Plate table: {settings.plate_csv} ({table!r})")
        self.logger.info(f"  Steps: {steps}")

        results = {}
        for step in steps:
            if self.token.cancelled:
                break

            self.logger.info(f"\n{'='*60}")
            self.logger.info(f"Step: {step}")
            self.logger.info(f"{'='*60}")

            if not dry_run:
                checkpoint.save_state(step, 'in_progress')

            if step == 'convert':
                scheduler = ConversionScheduler(
                    settings, table, engine=self.engine, token=self.token, dry_run=dry_run
                )
                result = scheduler.process()
            elif step == 'validate':
                result = OutputValidator(settings, table).process(output_dir)

            results[step] = result
            if not dry_run:
                status = 'completed' if result['status'] in ('success', 'passed', 'warning') else result['status']
                checkpoint.save_state(step, status, result.get('stats'))

            if result['status'] in ('failed', 'cancelled'):
                break

        self.logger.info(f"\n{'='*60}")
        self.logger.info("Pipeline completed" if not self.token.cancelled else "Pipeline stopped")
        for step, result in results.items():
            self.logger.info(f"  {step}: {result.get('status', 'unknown')}")
        self.logger.info(f"{'='*60}")

        return {
            'status': self._overall_status(results),
            'steps': results,
            'output_dir': str(output_dir),
        }

    def _resolve_steps(self, steps: Optional[List[str]], dry_run: bool) -> List[str]:
        steps = list(steps or self.STEPS)
        unknown = [s for s in steps if s not in self.STEPS]
        if unknown:
            raise ValueError(f"Unknown steps: {unknown}. Available: {self.STEPS}")
        if dry_run:
            steps = [s for s in steps if s != 'validate']
        return [s for s in self.STEPS if s in steps]

    def _overall_status(self, results: Dict[str, Dict]) -> str:
        if self.token.cancelled:
            return 'cancelled'
        statuses = [r.get('status') for r in results.values()]
        if any(s == 'failed' for s in statuses):
            return 'failed'
        if any(s == 'warning' for s in statuses):
            return 'warning'
        return 'success'
