"""
This module implements count estimation over cell-suppressed datasets.

Counts against the untransformed input are exact. Counts against a
suppressed output apportion credit to suppressed cells using the empirical
value frequencies of the output (the LikelihoodModel).
"""
import numpy as np
from typing import Any, Dict, Mapping, Optional
from pysuppress.dataset import SUPPRESSED, SuppressedDataset
from pysuppress.processing import sigmoid
from pysuppress.queries import Query

# Steepness of the activation applied to a row's likelihood
ACTIVATION_SCALE = 5.0


class LikelihoodModel:
    """
    Per-column value frequencies of one dataset.

    The model is a snapshot: it is built once per evaluated output and does
    not follow later changes of the dataset.

    Attributes:
        likelihoods (Dict[int, Dict[Any, float]]): column -> (value -> frequency).
    """

    def __init__(self, likelihoods: Mapping[int, Mapping[Any, float]]):
        """Initialize the model from an explicit column -> (value -> frequency) mapping."""
        self.likelihoods: Dict[int, Dict[Any, float]] = {
            column: dict(distribution) for column, distribution in likelihoods.items()
        }

    @classmethod
    def from_dataset(cls, dataset: SuppressedDataset) -> "LikelihoodModel":
        """Build the model from the frequency distribution of every column."""
        return cls({column: dataset.get_frequency_distribution(column)
                    for column in range(dataset.num_columns)})

    def frequency(self, column: int, value: Any) -> float:
        """Frequency of a value in a column; unseen values have frequency 0."""
        return self.likelihoods.get(column, {}).get(value, 0.0)

    def aggregate(self, query: Query) -> Dict[int, float]:
        """Sum, per predicate column, the frequencies of the predicate's target values."""
        return {column: sum(self.frequency(column, value) for value in targets)
                for column, targets in query.items()}


class AggregateEstimator:
    """
    Estimate the number of rows matching a conjunctive query.

    Without a likelihood model a row counts 1 if every predicate matches and
    0 otherwise. With a model, a predicate whose cell is suppressed multiplies
    the row's likelihood by the aggregate frequency of the predicate's target
    values, and a surviving row contributes (sigmoid(5 * L) - 0.5) * 2. Any
    non-matching, non-suppressed cell excludes the row.

    Every query is a full scan; there is no indexing.

    Attributes:
        likelihoods (Optional[LikelihoodModel]): Model used for suppressed cells, None for exact counts.
    """

    def __init__(self, likelihoods: Optional[LikelihoodModel] = None):
        self.likelihoods = likelihoods

    def matches(self, query: Query, dataset: SuppressedDataset) -> np.ndarray:
        """Return each row's likelihood L of matching the query (0 or 1 in exact mode)."""
        prepared = self.likelihoods.aggregate(query) if self.likelihoods is not None else None

        likelihood = np.ones(dataset.num_rows)
        for column, targets in query.items():
            values = dataset.column(column)
            matched = values.isin(list(targets)).to_numpy()
            if prepared is None:
                likelihood *= matched
            else:
                suppressed = values.isin([SUPPRESSED]).to_numpy()
                likelihood *= np.where(matched, 1.0, np.where(suppressed, prepared[column], 0.0))
        return likelihood

    def count(self, query: Query, dataset: SuppressedDataset) -> float:
        """Return the (estimated) number of rows matching the query."""
        likelihood = self.matches(query, dataset)
        if self.likelihoods is None:
            return float(likelihood.sum())
        # Excluded rows have L = 0 and therefore contribute exactly 0
        contributions = (sigmoid(ACTIVATION_SCALE * likelihood) - 0.5) * 2
        return float(contributions.sum())
