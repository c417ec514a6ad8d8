import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

from calmorph_conv.config import Config, ConversionSettings
from calmorph_conv.core.errors import ConversionEngineFailure
from calmorph_conv.core.plate import plate_layout, scan_ordinal

GENOTYPES = ['wt', 'his3', 'ura3']


def write_plate_csv(path: Path, labels):
    """Plate table with a header row and the genotype in the third column"""
    lines = ['plate,well,genotype']
    lines += [f'1,{i + 1},{label}' for i, label in enumerate(labels)]
    path.write_text('\n'.join(lines) + '\n')
    return path


def make_plate(root: Path, wells=96, fields=1, channels=2, labels=None, width=4):
    """Input directory holding one (empty) frame per well/field/channel"""
    input_dir = root / 'input'
    input_dir.mkdir(parents=True, exist_ok=True)
    layout = plate_layout(wells)

    for row, col in layout.wells():
        ordinal = scan_ordinal(row, col, layout.rows, layout.cols)
        for field in range(1, fields + 1):
            for channel in range(1, channels + 1):
                frame = ordinal * fields + field
                (input_dir / f'xy{frame:0{width}d}c{channel}.tif').write_bytes(b'II*\x00')

    if labels is None:
        labels = [GENOTYPES[i % len(GENOTYPES)] for i in range(layout.well_count)]
    csv = write_plate_csv(root / 'plate.csv', labels)
    return SimpleNamespace(input_dir=input_dir, csv=csv, labels=labels,
                           layout=layout, fields=fields, channels=channels)


def make_config(plate, **sections) -> Config:
    config = Config()
    config.set('plate.wells', plate.layout.well_count)
    config.set('microscope.name', 'joe')
    config.set('microscope.channels', plate.channels)
    config.set('parallel.jobs', 2)
    for key, value in sections.items():
        config.set(key.replace('__', '.'), value)
    return config


def make_settings(plate, output_dir: Path, **sections) -> ConversionSettings:
    return ConversionSettings.from_config(
        make_config(plate, **sections),
        input_dir=plate.input_dir,
        output_dir=output_dir,
        plate_csv=plate.csv,
    )


class FakeEngine:
    """Writes every expected tile instead of running ImageMagick"""

    def __init__(self, fail_on=(), on_run=None):
        self.calls = []
        self.fail_on = set(fail_on)
        self.on_run = on_run
        self._lock = threading.Lock()

    def run(self, task):
        with self._lock:
            self.calls.append(task)
        if self.on_run:
            self.on_run(task)
        if task.input_path.name in self.fail_on:
            raise ConversionEngineFailure(f"convert failed on {task.input_path.name}")
        for path in task.output_paths:
            path.write_bytes(b'\xff\xd8jpeg')


@pytest.fixture
def plate(tmp_path):
    return make_plate(tmp_path)


@pytest.fixture
def settings(plate, tmp_path):
    return make_settings(plate, tmp_path / 'out')


@pytest.fixture
def engine():
    return FakeEngine()
