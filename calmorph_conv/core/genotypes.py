"""
Plate table loading: genotype label per well and occurrence ranks
"""
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .errors import MissingPlateData
from .plate import PlateLayout, well_name


class GenotypeTable:
    """
    Genotype labels for every well of a plate, in row-major grid order.

    Occurrence rank of a well is the number of wells with a lower grid
    index carrying the same label. It decides where the well's tiles land
    in the label's shared output sequence.
    """

    def __init__(self, labels: List[str], layout: PlateLayout):
        expected = layout.well_count
        if len(labels) < expected:
            raise MissingPlateData(
                f"Plate table has {len(labels)} entries, expecting {expected} "
                f"({layout.rows}x{layout.cols})"
            )

        self.layout = layout
        self._labels = tuple(labels[:expected])

        for i, label in enumerate(self._labels):
            if not label:
                row, col = divmod(i, layout.cols)
                raise MissingPlateData(
                    f"No genotype for well {well_name(row, col)} (entry {i + 1})"
                )

        # Single forward pass, counting each label as it is seen
        seen = {}
        ranks = []
        for label in self._labels:
            ranks.append(seen.get(label, 0))
            seen[label] = seen.get(label, 0) + 1
        self._ranks = tuple(ranks)
        self._counts = seen

    @classmethod
    def load(cls, source: Path, layout: PlateLayout, column: int = 2) -> 'GenotypeTable':
        """
        Load a plate table from a CSV file.

        Args:
            source: CSV file path; the first row is a header and is skipped
            layout: Plate layout that the table must cover
            column: 0-based column holding the genotype label

        Returns:
            GenotypeTable
        """
        source = Path(source)
        if not source.is_file():
            raise MissingPlateData(f"Plate table not found: {source}")

        try:
            df = pd.read_csv(source, header=0, dtype=str, keep_default_na=False)
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            raise MissingPlateData(f"Plate table {source.name} could not be read: {e}") from e
        if column >= df.shape[1]:
            raise MissingPlateData(
                f"Plate table {source.name} has {df.shape[1]} columns, "
                f"genotype column {column + 1} is missing"
            )

        labels = [value.strip() for value in df.iloc[:, column]]
        return cls(labels, layout)

    def label(self, grid_index: int) -> str:
        return self._labels[grid_index]

    def occurrence_rank(self, grid_index: int) -> int:
        return self._ranks[grid_index]

    def count(self, label: str) -> int:
        """Number of wells carrying a label"""
        return self._counts.get(label, 0)

    def labels(self) -> List[str]:
        """Distinct labels in order of first appearance"""
        return list(self._counts)

    def __len__(self):
        return len(self._labels)

    def __repr__(self):
        return f"GenotypeTable({len(self._labels)} wells, {len(self._counts)} genotypes)"


def find_plate_table(input_dir: Path) -> Optional[Path]:
    """Find the first .csv plate table in a directory"""
    csvs = sorted(Path(input_dir).glob('*.csv'))
    return csvs[0] if csvs else None
