import json

import pytest

from calmorph_conv.core.genotypes import GenotypeTable
from calmorph_conv.modules import ConversionScheduler, OutputValidator
from calmorph_conv.modules.validation.processor import _summarize_runs

from conftest import FakeEngine


@pytest.fixture
def converted(settings):
    table = GenotypeTable.load(settings.plate_csv, settings.layout)
    ConversionScheduler(settings, table, engine=FakeEngine()).process()
    return settings, table


def test_converted_plate_passes(converted):
    settings, table = converted
    results = OutputValidator(settings, table).process()

    assert results['status'] == 'passed'
    assert results['details']['1_wtproc']['expected_per_channel'] == 32 * 4
    report = json.loads((settings.output_dir / 'validation_report.json').read_text())
    assert report['status'] == 'passed'


def test_gap_is_a_warning(converted):
    settings, table = converted
    (settings.output_dir / '1_ura3proc' / '1_ura3proc-D7.jpg').unlink()

    results = OutputValidator(settings, table).process()
    assert results['status'] == 'warning'
    assert any('1_ura3proc channel D' in w and '(7)' in w for w in results['warnings'])


def test_tiles_past_expected_range_fail(converted):
    settings, table = converted
    (settings.output_dir / '1_wtproc' / '1_wtproc-C129.jpg').write_bytes(b'x')

    results = OutputValidator(settings, table).process()
    assert results['status'] == 'failed'


def test_empty_tile_fails(converted):
    settings, table = converted
    (settings.output_dir / '1_wtproc' / '1_wtproc-C1.jpg').write_bytes(b'')

    results = OutputValidator(settings, table).process()
    assert results['status'] == 'failed'
    assert any('empty' in e for e in results['errors'])


def test_missing_group_directory_is_a_warning(converted):
    settings, table = converted
    for p in (settings.output_dir / '1_his3proc').iterdir():
        p.unlink()
    (settings.output_dir / '1_his3proc').rmdir()

    results = OutputValidator(settings, table).process()
    assert results['status'] == 'warning'
    assert not results['errors']
    assert any('1_his3proc: directory missing' in w for w in results['warnings'])


def test_summarize_runs():
    assert _summarize_runs([9, 1, 2, 3, 7, 10]) == '1-3, 7, 9-10'
