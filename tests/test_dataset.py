from pysuppress.dataset import SUPPRESSED, SuppressedDataset
from pysuppress.errors import UnknownAttributeError
import pandas as pd
import pytest


def _anonymized():
    return SuppressedDataset.from_frame(pd.DataFrame({
        'ZipCode': ['130**', '130**', '*', '148**'],
        'Age': ['< 30', '*', '< 30', '3*'],
    }))


def test_marker_is_not_a_string():
    assert SUPPRESSED != "*"
    assert str(SUPPRESSED) == "*"


def test_from_frame_replaces_marker():
    dataset = _anonymized()
    assert dataset.get_value(2, 0) is SUPPRESSED
    assert dataset.get_value(1, 1) is SUPPRESSED
    assert dataset.get_value(3, 1) == '3*', "Partially generalized values must stay untouched"


def test_from_frame_without_marker_keeps_literals():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'a': ['*', 'x']}), marker=None)
    assert dataset.get_value(0, 0) == '*'


def test_shape_and_lookup():
    dataset = _anonymized()
    assert dataset.num_rows == 4
    assert dataset.num_columns == 2
    assert dataset.columns == ['ZipCode', 'Age']
    assert dataset.get_column_index_of('Age') == 1
    assert dataset.get_attribute_name(0) == 'ZipCode'


def test_unknown_attribute():
    dataset = _anonymized()
    with pytest.raises(UnknownAttributeError):
        dataset.get_column_index_of('Nationality')
    with pytest.raises(UnknownAttributeError):
        dataset.column(5)
    with pytest.raises(IndexError):
        dataset.get_value(4, 0)


def test_duplicate_columns_are_rejected():
    with pytest.raises(ValueError):
        SuppressedDataset(pd.DataFrame([['1', '2']], columns=['a', 'a']))


def test_distinct_values_in_order_of_appearance():
    dataset = _anonymized()
    assert dataset.get_distinct_values(0) == ['130**', SUPPRESSED, '148**']
    assert dataset.get_distinct_values(1) == ['< 30', SUPPRESSED, '3*']


def test_frequency_distribution():
    distribution = _anonymized().get_frequency_distribution(0)
    assert distribution == {'130**': 0.5, SUPPRESSED: 0.25, '148**': 0.25}
    assert sum(distribution.values()) == pytest.approx(1.0)


def test_iterator_yields_rows():
    rows = list(_anonymized().iterator())
    assert rows[0] == ('130**', '< 30')
    assert rows[2] == (SUPPRESSED, '< 30')
    assert len(rows) == 4


def test_from_csv(tmp_path):
    path = tmp_path / "adult.csv"
    path.write_text("sex;age\nmale;34\nfemale;*\n")
    dataset = SuppressedDataset.from_csv(path)
    assert dataset.columns == ['sex', 'age']
    assert dataset.get_value(0, 1) == '34'
    assert dataset.get_value(1, 1) is SUPPRESSED
