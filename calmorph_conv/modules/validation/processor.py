"""
Output Validation Module

Checks the converted plate the way CalMorph will read it: every genotype
directory must hold, per channel, tiles numbered 1..N without gaps.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...config import ConversionSettings
from ...core.base import BaseProcessor
from ...core.genotypes import GenotypeTable
from ..conversion.engine import STAGING_PREFIX


def _summarize_runs(numbers: List[int]) -> str:
    """[1, 2, 3, 7, 9, 10] -> '1-3, 7, 9-10'"""
    runs = []
    for n in sorted(numbers):
        if runs and n == runs[-1][1] + 1:
            runs[-1][1] = n
        else:
            runs.append([n, n])
    return ', '.join(str(a) if a == b else f"{a}-{b}" for a, b in runs)


class OutputValidator(BaseProcessor):
    """
    Validate group directories against the plate table.

    Gaps are warnings (missing input frames leave them legitimately);
    tiles numbered past the expected range, empty tiles and missing group
    directories are errors.
    """

    def __init__(self, settings: ConversionSettings, table: GenotypeTable):
        super().__init__(settings)
        self.table = table

    def expected_tiles(self, label: str) -> int:
        s = self.settings
        return self.table.count(label) * s.fields_per_well * s.tiles_per_frame

    def process(self, output_dir: Optional[Path] = None,
                report_path: Optional[Path] = None, **kwargs) -> Dict[str, Any]:
        """
        Validate converted output.

        Args:
            output_dir: Converted plate root (defaults to the settings')
            report_path: JSON report destination
                (defaults to <output_dir>/validation_report.json)

        Returns:
            Dict with status ('passed', 'warning', 'failed'), warnings,
            errors and per-group details
        """
        s = self.settings
        output_dir = Path(output_dir or s.output_dir)
        self._log_start("Output Validation", output_dir)

        results = {
            'timestamp': datetime.now().isoformat(),
            'status': 'passed',
            'warnings': [],
            'errors': [],
            'details': {},
        }

        for label in self.table.labels():
            self._check_group(output_dir, label, results)

        leftovers = [str(p.relative_to(output_dir)) for p in output_dir.glob(f'*/{STAGING_PREFIX}*')]
        if leftovers:
            results['warnings'].append(f"{len(leftovers)} incomplete staging directories: {leftovers[:5]}")

        if results['errors']:
            results['status'] = 'failed'
        elif results['warnings']:
            results['status'] = 'warning'

        for message in results['errors']:
            self.logger.error(message)
        for message in results['warnings']:
            self.logger.warning(message)

        report_path = Path(report_path or output_dir / 'validation_report.json')
        with open(report_path, 'w') as f:
            json.dump(results, f, indent=2)

        stats = {
            'groups': len(results['details']),
            'errors': len(results['errors']),
            'warnings': len(results['warnings']),
            'report': report_path.name,
        }
        self._log_complete("Output Validation", output_dir, stats)
        results['stats'] = stats
        return results

    def _check_group(self, output_dir: Path, label: str, results: Dict):
        codec = self.settings.codec
        group_dir = output_dir / codec.group_dirname(label)
        expected = self.expected_tiles(label)

        if not group_dir.is_dir():
            # No task of this group had an input frame
            results['warnings'].append(f"{group_dir.name}: directory missing, no tiles converted")
            return

        detail = {'wells': self.table.count(label), 'expected_per_channel': expected, 'channels': {}}
        for channel in range(1, self.settings.channel_count + 1):
            symbol = codec.symbol(channel)
            pattern = codec.output_pattern(label, symbol)

            numbers = []
            empty = []
            for p in group_dir.iterdir():
                m = pattern.match(p.name)
                if not m:
                    continue
                numbers.append(int(m.group(1)))
                if p.stat().st_size == 0:
                    empty.append(p.name)

            present = set(numbers)
            gaps = sorted(set(range(1, expected + 1)) - present)
            beyond = sorted(n for n in present if n < 1 or n > expected)

            detail['channels'][symbol] = {'tiles': len(present), 'gaps': len(gaps)}

            where = f"{group_dir.name} channel {symbol}"
            if gaps:
                results['warnings'].append(f"{where}: {len(gaps)} missing tiles ({_summarize_runs(gaps)})")
            if beyond:
                results['errors'].append(
                    f"{where}: tiles outside 1..{expected} ({_summarize_runs(beyond)})"
                )
            if empty:
                results['errors'].append(f"{where}: {len(empty)} empty files")

        results['details'][group_dir.name] = detail
