import pytest

from calmorph_conv.core.errors import FilenamePatternMismatch, UnrecognizedChannel
from calmorph_conv.core.genotypes import GenotypeTable
from calmorph_conv.core.naming import (
    FrameFilenameCodec,
    first_sequence_number,
    infer_digit_width,
    sequence_range,
)
from calmorph_conv.core.plate import plate_layout


@pytest.fixture
def codec():
    return FrameFilenameCodec(digit_width=5)


def test_input_filename_uses_scan_ordinal_and_field(codec):
    assert codec.input_filename(0, 1, 1, fields_per_well=3) == 'xy00001c1.tif'
    assert codec.input_filename(2, 3, 2, fields_per_well=3) == 'xy00009c2.tif'
    assert codec.frame_number(383, 4, 4) == 1536


def test_output_names(codec):
    assert codec.group_dirname('his3') == '1_his3proc'
    assert codec.output_template('his3', 1) == '1_his3proc-C%d.jpg'
    assert codec.output_template('his3', 3) == '1_his3proc-A%d.jpg'
    assert codec.output_filename('his3', 2, 17) == '1_his3proc-D17.jpg'


def test_custom_group_affixes():
    codec = FrameFilenameCodec(group_prefix='', group_suffix='_run2', out_ext='png')
    assert codec.output_filename('wt', 1, 1) == 'wt_run2-C1.png'


def test_unrecognized_channel(codec):
    with pytest.raises(UnrecognizedChannel):
        codec.output_template('wt', 4)


def test_output_pattern(codec):
    pattern = codec.output_pattern('wt', 'C')
    assert pattern.match('1_wtproc-C12.jpg').group(1) == '12'
    assert pattern.match('1_wtproc-D12.jpg') is None
    assert pattern.match('1_wt2proc-C12.jpg') is None


@pytest.mark.parametrize("name, width", [
    ('xy0001c1.tif', 4),
    ('xy000123c2.tif', 6),
    ('/data/plate/xy12c1.tif', 2),
])
def test_infer_digit_width(name, width):
    assert infer_digit_width(name, 'xy', 'c', 'tif') == width


@pytest.mark.parametrize("name", ['ab0001c1.tif', 'xy0001c1.png', 'xyc1.tif', 'xy0001_1.tif'])
def test_infer_digit_width_mismatch(name):
    with pytest.raises(FilenamePatternMismatch):
        infer_digit_width(name, 'xy', 'c', 'tif')


def test_first_sequence_number():
    assert first_sequence_number(0, 1, 15, 4) == 1
    assert first_sequence_number(0, 2, 15, 4) == 16
    assert first_sequence_number(1, 1, 15, 4) == 61
    assert first_sequence_number(2, 3, 4, 5) == 2 * 5 * 4 + 2 * 4 + 1


@pytest.mark.parametrize("fields, tiles", [(1, 1), (4, 15), (3, 4)])
def test_group_sequences_are_contiguous(fields, tiles):
    labels = ['wt', 'his3', 'wt', 'ura3', 'wt', 'his3'] * 16
    table = GenotypeTable(labels, plate_layout(96))

    numbers = {}
    for index in range(len(table)):
        label = table.label(index)
        for field in range(1, fields + 1):
            numbers.setdefault(label, []).extend(
                sequence_range(table.occurrence_rank(index), field, tiles, fields)
            )

    for label, seqs in numbers.items():
        expected = table.count(label) * fields * tiles
        assert sorted(seqs) == list(range(1, expected + 1))
