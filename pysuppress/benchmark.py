"""
This module implements the benchmark drivers built on the estimators.

CubeBenchmark measures how well counts over a suppressed output approximate
counts over the input, for every combination of attributes. RiskUtilityBenchmark
trades privacy thresholds against the fraction of retained cells. The
anonymization engine itself is injected as a callable.
"""
import time
import numpy as np
import pandas as pd
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from pysuppress.dataset import SuppressedDataset
from pysuppress.errors import EmptyInputError, InvalidArgumentError
from pysuppress.estimator import AggregateEstimator, LikelihoodModel
from pysuppress.processing import (
    calculate_information_loss,
    calculate_non_uniform_entropy,
    count_suppressed_cells,
    get_power_set,
    get_size_threshold,
    relative_error
)
from pysuppress.queries import QueryGenerator

# Quasi-identifiers per dataset, in the order used for prefix experiments
DATASET_ATTRIBUTES: Dict[str, List[str]] = {
    "adult": ["sex", "age", "race", "marital-status", "education", "native-country",
              "workclass", "occupation", "salary-class"],
    "ihis": ["YEAR", "QUARTER", "REGION", "PERNUM", "AGE", "MARSTAT", "SEX", "RACEA", "EDUC"],
}

# Thresholds 1/i evaluated for risk-utility frontiers
DEFAULT_DENOMINATORS: Tuple[int, ...] = (2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 20, 25, 50, 100)


@dataclass(frozen=True)
class Risks:
    """
    Risk thresholds handed to the anonymization engine.

    Attributes:
        average_risk (float): Threshold for the average re-identification risk.
        highest_risk (float): Threshold for the highest re-identification risk.
        records_at_risk (float): Threshold for the fraction of records at risk.
    """

    average_risk: float
    highest_risk: float
    records_at_risk: float

    def __post_init__(self):
        for name in ("average_risk", "highest_risk", "records_at_risk"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise InvalidArgumentError(f"{name} must be in [0, 1], got {value}")
        if self.highest_risk == 0:
            raise InvalidArgumentError("highest_risk must be greater than 0")

    def privacy_models(self) -> Dict[str, Any]:
        """
        Translate the thresholds into the privacy models to configure.

        Without a records-at-risk threshold the average risk becomes its own
        model (unless it is 1, which admits everything) and the highest risk
        becomes k-anonymity with k = get_size_threshold(highest_risk) (unless
        k is 1). Otherwise a single combined average-risk model is used.
        """
        if self.records_at_risk == 0:
            models: Dict[str, Any] = {}
            if self.average_risk != 1:
                models["average_risk"] = self.average_risk
            k = get_size_threshold(self.highest_risk)
            if k != 1:
                models["k"] = k
            return models
        return {"average_risk": (self.average_risk, self.highest_risk, self.records_at_risk)}


# Engine contract: (dataset, risks, quasi-identifiers) -> suppressed output
Anonymizer = Callable[[SuppressedDataset, Risks, List[str]], Optional[SuppressedDataset]]


@dataclass
class BenchmarkConfig:
    """
    Settings shared by the benchmark entry points.

    Attributes:
        data_dir (str): Directory holding '<dataset>.csv' files.
        attributes (Dict[str, List[str]]): Quasi-identifiers per dataset name.
        iterations (int): Random queries per attribute subset and query type.
        seed (Optional[int]): Seed for query generation; None for fresh entropy.
        sep (str): Field separator of the CSV files.
        marker (str): Literal that denotes a suppressed cell in the files.
    """

    data_dir: str = "./data/"
    attributes: Dict[str, List[str]] = field(
        default_factory=lambda: {name: list(qis) for name, qis in DATASET_ATTRIBUTES.items()})
    iterations: int = 1000
    seed: Optional[int] = None
    sep: str = ";"
    marker: str = "*"

    def attributes_for(self, dataset: str, num_qis: Optional[int] = None) -> List[str]:
        """Return the first num_qis quasi-identifiers of a dataset (all of them by default)."""
        if dataset not in self.attributes:
            raise InvalidArgumentError(f"invalid dataset: {dataset}")
        qis = self.attributes[dataset]
        return list(qis if num_qis is None else qis[:num_qis])

    def load(self, dataset: str) -> SuppressedDataset:
        """Load '<data_dir>/<dataset>.csv'."""
        return SuppressedDataset.from_csv(Path(self.data_dir) / f"{dataset}.csv",
                                          sep=self.sep, marker=self.marker)


@dataclass(frozen=True)
class ErrorStatistics:
    """
    Immutable collection of samples with descriptive statistics on demand.

    add/extend/merge return new instances; nothing is shared between runs.
    """

    samples: Tuple[float, ...] = ()

    def add(self, value: float) -> "ErrorStatistics":
        return replace(self, samples=self.samples + (float(value),))

    def extend(self, values: Iterable[float]) -> "ErrorStatistics":
        return replace(self, samples=self.samples + tuple(float(v) for v in values))

    def merge(self, other: "ErrorStatistics") -> "ErrorStatistics":
        return replace(self, samples=self.samples + other.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def _require_samples(self) -> np.ndarray:
        if not self.samples:
            raise EmptyInputError("No samples have been collected.")
        return np.sort(np.asarray(self.samples, dtype=float))

    def mean(self) -> float:
        return float(np.mean(self._require_samples()))

    def percentile(self, p: float) -> float:
        """
        Estimate the p-th percentile (0 < p <= 100).

        Uses the position p * (n + 1) / 100 with linear interpolation between
        neighbouring order statistics, clamped to the extremes. Interpolation
        is skipped when both neighbours are equal so that infinite errors
        yield inf rather than nan.
        """
        if not 0 < p <= 100:
            raise InvalidArgumentError(f"Percentile must be in (0, 100], got {p}")
        values = self._require_samples()
        n = len(values)
        position = p * (n + 1) / 100.0
        if position < 1:
            return float(values[0])
        if position >= n:
            return float(values[-1])
        lower = int(np.floor(position))
        fraction = position - lower
        low, high = values[lower - 1], values[lower]
        if fraction == 0 or low == high:
            return float(low)
        return float(low + fraction * (high - low))

    def median(self) -> float:
        return self.percentile(50.0)


@dataclass(frozen=True)
class AccuracyReport:
    """Relative errors of point and range queries plus information loss samples."""

    point_errors: ErrorStatistics
    range_errors: ErrorStatistics
    information_loss: ErrorStatistics

    @property
    def median_point_error(self) -> float:
        return self.point_errors.median()

    @property
    def median_range_error(self) -> float:
        return self.range_errors.median()

    @property
    def mean_information_loss(self) -> float:
        return self.information_loss.mean()


class CubeBenchmark:
    """
    Evaluate count estimation over a suppressed dataset, OLAP-cube style.

    For every non-empty subset of the attributes, random point and range
    queries are generated from the input. Each query is counted exactly on
    the input and estimated on the output using a LikelihoodModel built once
    from the output; the relative errors are collected per query type.

    Attributes:
        attributes (Optional[List[str]]): Attributes spanning the cube. None means all input columns.
        iterations (int): Queries per subset and query type.
        draw (bool): Draw point query values independently (True) or take them from a record (False).
        seed (Optional[int]): Seed for query generation.
        silent (bool): Suppresses all print statements if True. Default False.
    """

    def __init__(self,
                 attributes: Optional[Sequence[str]] = None,
                 iterations: int = 1000,
                 draw: bool = True,
                 seed: Optional[int] = None,
                 random_state: Optional[np.random.Generator] = None,
                 silent: bool = False):
        """Initialize the benchmark with the given parameters."""
        if iterations < 1:
            raise InvalidArgumentError("iterations must be at least 1.")
        if attributes is not None and not attributes:
            raise InvalidArgumentError("attributes list cannot be empty.")

        self.attributes = list(attributes) if attributes is not None else None
        self.iterations = iterations
        self.draw = draw
        self.seed = seed
        self.random_state = random_state
        self.silent = silent

    @classmethod
    def from_config(cls, config: BenchmarkConfig, dataset: str, **kwargs) -> "CubeBenchmark":
        """Create a benchmark over a configured dataset's quasi-identifiers."""
        return cls(attributes=config.attributes_for(dataset), iterations=config.iterations,
                   seed=config.seed, **kwargs)

    def _print(self, *args, **kwargs):
        """Prints only if not silent."""
        if not self.silent:
            print(*args, **kwargs)

    def evaluate(self, input_data: SuppressedDataset, output: SuppressedDataset) -> AccuracyReport:
        """Run the benchmark for an input and its suppressed output."""
        if input_data.num_rows != output.num_rows:
            raise ValueError("Input and output datasets must have the same number of rows.")
        attributes = self.attributes if self.attributes is not None else input_data.columns
        for attribute in attributes:
            # Fail before any query is run
            input_data.get_column_index_of(attribute)
            output.get_column_index_of(attribute)

        generator = QueryGenerator(input_data, seed=self.seed, random_state=self.random_state)
        exact = AggregateEstimator()
        approximate = AggregateEstimator(LikelihoodModel.from_dataset(output))

        point_errors = ErrorStatistics()
        range_errors = ErrorStatistics()
        information_loss = ErrorStatistics()

        subsets = [s for s in get_power_set(attributes) if s]
        self._print(f"Evaluating {len(subsets)} attribute subsets with {self.iterations} queries each...")
        # Sort for a reproducible query sequence under a fixed seed
        for subset in sorted(subsets, key=lambda s: (len(s), sorted(s))):
            subset = sorted(subset)
            information_loss = information_loss.add(calculate_information_loss(input_data, output, subset))

            point, ranged = [], []
            for _ in range(self.iterations):
                point_query = generator.point_query(subset, draw=self.draw)
                range_query = generator.range_query(subset)
                point.append(relative_error(exact.count(point_query, input_data),
                                            approximate.count(point_query, output)))
                ranged.append(relative_error(exact.count(range_query, input_data),
                                             approximate.count(range_query, output)))
            point_errors = point_errors.extend(point)
            range_errors = range_errors.extend(ranged)

        report = AccuracyReport(point_errors, range_errors, information_loss)
        self._print(" - Final results")
        self._print(f" - LM: {report.mean_information_loss}")
        self._print(f" - Median relative error (point queries): {report.median_point_error}")
        self._print(f" - Median relative error (range queries): {report.median_range_error}")
        return report


class RiskUtilityBenchmark:
    """
    Measure utility (retained cells) of suppressed outputs under varying privacy thresholds.

    Attributes:
        anonymizer (Anonymizer): Engine producing the suppressed output.
        silent (bool): Suppresses all print statements if True. Default False.
    """

    def __init__(self, anonymizer: Anonymizer, silent: bool = False):
        if anonymizer is None:
            raise ValueError("anonymizer must be specified.")
        self.anonymizer = anonymizer
        self.silent = silent

    def _print(self, *args, **kwargs):
        """Prints only if not silent."""
        if not self.silent:
            print(*args, **kwargs)

    def _anonymize(self, dataset: SuppressedDataset, risks: Risks,
                   quasi_identifiers: List[str]) -> SuppressedDataset:
        for attribute in quasi_identifiers:
            dataset.get_column_index_of(attribute)
        output = self.anonymizer(dataset, risks, quasi_identifiers)
        if output is None:
            raise RuntimeError(f"Anonymizer produced no output for {risks}.")
        return output

    def frontier(self,
                 dataset: SuppressedDataset,
                 quasi_identifiers: Sequence[str],
                 model: str = "highest",
                 denominators: Iterable[int] = DEFAULT_DENOMINATORS,
                 risk_estimator: Optional[Callable[[SuppressedDataset, float], float]] = None) -> pd.DataFrame:
        """
        Compute the risk-utility frontier for thresholds 1/i.

        model='highest' limits the highest risk, model='average' the average
        risk. For the average model, risk_estimator(output, threshold) may
        report the risk actually measured on the output. The frontier is
        bracketed by (1.0, 1.0) and (0.0, 0.0).
        """
        if model not in ("highest", "average"):
            raise InvalidArgumentError(f"model must be 'highest' or 'average', got {model!r}")
        quasi_identifiers = list(quasi_identifiers)

        self._print(f"Risk-utility frontier ({model} risk)...")
        records = [{"risk": 1.0, "utility": 1.0}]
        for i in denominators:
            threshold = 1.0 / i
            if model == "highest":
                risks = Risks(1.0, threshold, 0.0)
            else:
                risks = Risks(threshold, 1.0, 0.0)
            output = self._anonymize(dataset, risks, quasi_identifiers)
            risk = threshold
            if model == "average" and risk_estimator is not None:
                risk = risk_estimator(output, threshold)
            utility = 1.0 - count_suppressed_cells(output.iterator())
            self._print(f"{risk};{utility}")
            records.append({"risk": risk, "utility": utility})
        records.append({"risk": 0.0, "utility": 0.0})
        return pd.DataFrame(records, columns=["risk", "utility"])

    def suppressed_cells(self,
                         dataset: SuppressedDataset,
                         risks: Risks,
                         quasi_identifiers: Sequence[str]) -> pd.DataFrame:
        """
        Quality and cost of the output when using the first 1..n quasi-identifiers.

        For every prefix, reports the fraction of suppressed cells, the
        non-uniform entropy of the output against the input over the prefix,
        and the execution time of the anonymizer.
        """
        quasi_identifiers = list(quasi_identifiers)
        if not quasi_identifiers:
            raise InvalidArgumentError("quasi_identifiers list cannot be empty.")

        self._print(f"Suppressed cells (privacy = {risks})")
        columns = ["num_qis", "suppressed_cells", "non_uniform_entropy", "execution_time_ms"]
        records = []
        for num_qis in range(1, len(quasi_identifiers) + 1):
            qis = quasi_identifiers[:num_qis]
            start = time.perf_counter()
            output = self._anonymize(dataset, risks, qis)
            elapsed = (time.perf_counter() - start) * 1000.0
            suppressed = count_suppressed_cells(output.iterator())
            entropy = calculate_non_uniform_entropy(dataset, output, qis)
            self._print(f"{num_qis} - {suppressed} - {entropy} - {elapsed:.0f}")
            records.append(dict(zip(columns, (num_qis, suppressed, entropy, elapsed))))
        return pd.DataFrame(records, columns=columns)
