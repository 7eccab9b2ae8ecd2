from pysuppress.dataset import SUPPRESSED, SuppressedDataset
from pysuppress.estimator import AggregateEstimator, LikelihoodModel
from pysuppress.processing import relative_error
from pysuppress.queries import QueryGenerator
import math
import numpy as np
import pandas as pd
import pytest


def _activation(likelihood):
    return (1 / (1 + math.exp(-5 * likelihood)) - 0.5) * 2


def test_exact_count():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['male', 'female', 'female'],
                                                         'age': ['34', '34', '45']}))
    estimator = AggregateEstimator()
    assert estimator.count({0: {'male'}}, dataset) == 1
    assert estimator.count({0: {'female'}, 1: {'34', '45'}}, dataset) == 2
    assert estimator.count({0: {'other'}}, dataset) == 0


def test_exact_count_ignores_suppressed_cells():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['male', '*', 'female']}))
    assert AggregateEstimator().count({0: {'male'}}, dataset) == 1


def test_approximate_contribution_of_suppressed_cell():
    dataset = SuppressedDataset(pd.DataFrame({'sex': ['male'], 'age': [SUPPRESSED]}))
    model = LikelihoodModel({0: {'male': 1.0}, 1: {'34': 0.5, SUPPRESSED: 0.4, '45': 0.1}})
    estimator = AggregateEstimator(model)
    query = {0: {'male'}, 1: {'34'}}

    assert estimator.matches(query, dataset).tolist() == [0.5]
    assert estimator.count(query, dataset) == pytest.approx(_activation(0.5))


def test_approximate_mode_weights():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({
        'sex': ['male', 'male', '*', '*', 'female'],
        'age': ['34', '*', '*', '45', '*'],
    }))
    model = LikelihoodModel.from_dataset(dataset)
    estimator = AggregateEstimator(model)
    query = {0: {'male'}, 1: {'34'}}

    likelihood = estimator.matches(query, dataset)
    # male: 0.4, 34: 0.2
    assert likelihood.tolist() == pytest.approx([1.0, 0.2, 0.4 * 0.2, 0.0, 0.0])
    expected = _activation(1.0) + _activation(0.2) + _activation(0.08)
    assert estimator.count(query, dataset) == pytest.approx(expected)


def test_full_match_is_damped():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['male']}))
    estimator = AggregateEstimator(LikelihoodModel.from_dataset(dataset))
    count = estimator.count({0: {'male'}}, dataset)
    assert count == pytest.approx(_activation(1.0))
    assert 0.98 < count < 1.0


def test_unknown_target_values_have_no_likelihood():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['*', '*']}))
    estimator = AggregateEstimator(LikelihoodModel.from_dataset(dataset))
    assert estimator.count({0: {'other'}}, dataset) == 0.0


def test_likelihood_model():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['male', '*', 'female', 'male'],
                                                         'age': ['34', '34', '34', '*']}))
    model = LikelihoodModel.from_dataset(dataset)
    assert model.frequency(0, 'male') == 0.5
    assert model.frequency(0, SUPPRESSED) == 0.25
    assert model.frequency(1, '45') == 0.0
    assert model.aggregate({0: {'male', 'female'}, 1: {'34', '45'}}) == {0: 0.75, 1: 0.75}


def test_likelihood_model_is_a_snapshot():
    dataset = SuppressedDataset.from_frame(pd.DataFrame({'sex': ['male', 'female']}))
    model = LikelihoodModel.from_dataset(dataset)
    dataset.data.iat[0, 0] = 'female'
    assert model.frequency(0, 'male') == 0.5


def test_relative_errors_are_well_defined():
    rng = np.random.default_rng(7)
    frame = pd.DataFrame({
        'sex': rng.choice(['male', 'female'], size=200),
        'age': rng.choice(['20', '30', '40', '50', '60'], size=200),
        'race': rng.choice(['white', 'black', 'asian', 'other'], size=200),
    })
    input_data = SuppressedDataset.from_frame(frame)
    suppressed = frame.mask(rng.random(frame.shape) < 0.2, '*')
    output = SuppressedDataset.from_frame(suppressed)

    exact = AggregateEstimator()
    approximate = AggregateEstimator(LikelihoodModel.from_dataset(output))
    generator = QueryGenerator(input_data, seed=5)
    for _ in range(50):
        for query in (generator.point_query(['sex', 'race']), generator.range_query(['sex', 'age', 'race'])):
            estimate = approximate.count(query, output)
            assert 0 <= estimate <= output.num_rows
            error = relative_error(exact.count(query, input_data), estimate)
            assert error >= 0 and not math.isnan(error)
