import pytest

from calmorph_conv.core.errors import MissingPlateData
from calmorph_conv.core.genotypes import GenotypeTable, find_plate_table
from calmorph_conv.core.plate import plate_layout

from conftest import write_plate_csv


@pytest.fixture
def layout():
    return plate_layout(96)


def test_load_skips_header_and_reads_third_column(tmp_path, layout):
    labels = ['wt', 'his3'] * 48
    table = GenotypeTable.load(write_plate_csv(tmp_path / 'p.csv', labels), layout)
    assert len(table) == 96
    assert table.label(0) == 'wt'
    assert table.label(1) == 'his3'
    assert table.label(95) == 'his3'


def test_occurrence_rank_counts_earlier_same_label(layout):
    labels = ['a', 'b', 'a', 'a', 'c', 'b'] + ['z'] * 90
    table = GenotypeTable(labels, layout)
    assert [table.occurrence_rank(i) for i in range(6)] == [0, 0, 1, 2, 0, 1]
    assert table.occurrence_rank(95) == 89
    assert table.count('a') == 3
    assert table.count('z') == 90
    assert table.count('missing') == 0
    assert table.labels() == ['a', 'b', 'c', 'z']


def test_short_table_is_missing_plate_data(tmp_path, layout):
    path = write_plate_csv(tmp_path / 'p.csv', ['wt'] * 95)
    with pytest.raises(MissingPlateData, match="95 entries"):
        GenotypeTable.load(path, layout)


def test_extra_rows_are_ignored(layout):
    table = GenotypeTable(['wt'] * 100, layout)
    assert len(table) == 96


def test_blank_label_is_missing_plate_data(tmp_path, layout):
    labels = ['wt'] * 96
    labels[13] = ''
    with pytest.raises(MissingPlateData, match="B2"):
        GenotypeTable.load(write_plate_csv(tmp_path / 'p.csv', labels), layout)


def test_empty_table_is_missing_plate_data(tmp_path, layout):
    path = tmp_path / 'p.csv'
    path.write_text('')
    with pytest.raises(MissingPlateData, match="could not be read"):
        GenotypeTable.load(path, layout)


def test_header_only_table_is_missing_plate_data(tmp_path, layout):
    path = write_plate_csv(tmp_path / 'p.csv', [])
    with pytest.raises(MissingPlateData):
        GenotypeTable.load(path, layout)


def test_missing_file(tmp_path, layout):
    with pytest.raises(MissingPlateData):
        GenotypeTable.load(tmp_path / 'nope.csv', layout)


def test_missing_genotype_column(tmp_path, layout):
    path = tmp_path / 'p.csv'
    path.write_text('plate,well\n' + '1,1\n' * 96)
    with pytest.raises(MissingPlateData, match="column 3"):
        GenotypeTable.load(path, layout)


def test_crlf_table(tmp_path, layout):
    path = tmp_path / 'p.csv'
    path.write_bytes(b'plate,well,genotype\r\n' + b'1,1,wt\r\n' * 96)
    table = GenotypeTable.load(path, layout)
    assert table.label(0) == 'wt'


def test_find_plate_table(tmp_path):
    assert find_plate_table(tmp_path) is None
    (tmp_path / 'b.csv').write_text('x')
    (tmp_path / 'a.csv').write_text('x')
    assert find_plate_table(tmp_path).name == 'a.csv'
