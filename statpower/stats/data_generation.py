"""
Synthetic source/target datasets for transfer-learning power simulations.

Generates paired domains with:
- Equicorrelated multivariate normal features
- A mean shift of the target domain along a random direction
- Logistic labels with configurable prevalence and label noise

All randomness comes from an explicitly passed ``numpy.random.Generator``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np
from scipy.spatial.distance import cdist
from scipy.special import expit

if TYPE_CHECKING:
    from ..core.config import DataGenerationConfig

FLOAT_NEAR_ZERO = 1e-15
PREVALENCE_BOUNDS = (0.001, 0.999)
COEFFICIENT_ATTENUATION = 0.3
MMD_BANDWIDTH_ROWS = 50

__all__ = [
    "TransferDataset",
    "equicorrelation_matrix",
    "sample_correlated_features",
    "random_unit_vector",
    "logit",
    "generate_labels",
    "generate_transfer_data",
    "maximum_mean_discrepancy",
]


@dataclass(frozen=True)
class TransferDataset:
    """One simulated source/target pair.

    Attributes:
        source_X: (n_source, p) source-domain features.
        source_y: (n_source,) binary source labels.
        target_X: (n_target, p) target-domain features.
        target_y: (n_target,) binary target labels.
        coefficients: (p,) true source-domain coefficients.
        domain_shift: Magnitude of the target mean shift.
    """

    source_X: np.ndarray
    source_y: np.ndarray
    target_X: np.ndarray
    target_y: np.ndarray
    coefficients: np.ndarray
    domain_shift: float


def equicorrelation_matrix(num_features: int, correlation: float) -> np.ndarray:
    """Correlation matrix with ones on the diagonal and *correlation* elsewhere."""
    matrix = np.full((num_features, num_features), float(correlation))
    np.fill_diagonal(matrix, 1.0)
    return matrix


def _cholesky_factor(corr_matrix: np.ndarray) -> np.ndarray:
    """Cholesky factor, falling back to eigen-decomposition for non-PD input."""
    try:
        return np.linalg.cholesky(corr_matrix)
    except np.linalg.LinAlgError:
        eigenvals, eigenvecs = np.linalg.eigh(corr_matrix)
        eigenvals = np.maximum(eigenvals, FLOAT_NEAR_ZERO)
        return eigenvecs @ np.diag(np.sqrt(eigenvals))


def sample_correlated_features(
    rng: np.random.Generator,
    sample_size: int,
    num_features: int,
    correlation: float,
    mean: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Draw rows from an equicorrelated multivariate normal.

    Args:
        rng: Random generator.
        sample_size: Number of rows.
        num_features: Number of columns.
        correlation: Pairwise correlation between every two features.
        mean: Optional (num_features,) mean vector, zero if omitted.

    Returns:
        (sample_size, num_features) array.
    """
    cholesky = _cholesky_factor(equicorrelation_matrix(num_features, correlation))
    base_normal = rng.standard_normal((sample_size, num_features))
    X = base_normal @ cholesky.T
    if mean is not None:
        X = X + mean
    return X


def random_unit_vector(rng: np.random.Generator, dimension: int) -> np.ndarray:
    """Uniformly distributed direction on the unit sphere."""
    vector = rng.standard_normal(dimension)
    norm = np.linalg.norm(vector)
    if norm < FLOAT_NEAR_ZERO:
        vector = np.ones(dimension)
        norm = np.sqrt(dimension)
    return vector / norm


def logit(p: float) -> float:
    """Log-odds of *p*, with *p* clamped to ``[0.001, 0.999]``."""
    p = min(max(p, PREVALENCE_BOUNDS[0]), PREVALENCE_BOUNDS[1])
    return float(np.log(p / (1.0 - p)))


def generate_labels(
    rng: np.random.Generator,
    X: np.ndarray,
    coefficients: np.ndarray,
    prevalence: float,
    shared_variance: float,
    noise: float,
) -> np.ndarray:
    """
    Bernoulli labels from a logistic model.

    The linear predictor ``X @ coefficients`` is scaled by
    ``sqrt(shared_variance)``, perturbed with ``N(0, noise)`` per row and
    offset by ``logit(prevalence)``.

    Returns:
        (n,) integer array of 0/1 labels.
    """
    linear = X @ coefficients * np.sqrt(shared_variance)
    linear = linear + rng.normal(0.0, noise, size=X.shape[0])
    probabilities = expit(linear + logit(prevalence))
    return (rng.random(X.shape[0]) < probabilities).astype(np.int64)


def generate_transfer_data(
    rng: np.random.Generator,
    sample_size: int,
    domain_shift: float,
    config: "DataGenerationConfig",
    target_sample_size: Optional[int] = None,
) -> TransferDataset:
    """
    Simulate one source/target dataset pair.

    Draw order is fixed (source features, shift direction, target features,
    coefficients, source labels, target labels) so that a seeded generator
    reproduces the same dataset.

    Args:
        rng: Random generator for this iteration.
        sample_size: Rows in the source domain.
        domain_shift: Length of the target mean shift. Target coefficients
            are also attenuated by ``1 - 0.3 * domain_shift``.
        config: Feature and label generation settings.
        target_sample_size: Rows in the target domain, defaults to
            *sample_size*.

    Returns:
        TransferDataset
    """
    if target_sample_size is None:
        target_sample_size = sample_size
    p = config.num_features
    rho = config.feature_correlation

    source_X = sample_correlated_features(rng, sample_size, p, rho)
    direction = random_unit_vector(rng, p)
    target_X = sample_correlated_features(rng, target_sample_size, p, rho, mean=direction * domain_shift)

    coefficients = random_unit_vector(rng, p)
    source_y = generate_labels(
        rng,
        source_X,
        coefficients,
        config.source_prevalence,
        config.shared_variance,
        config.species_specific_noise,
    )

    target_coefficients = coefficients * (1.0 - COEFFICIENT_ATTENUATION * domain_shift)
    target_y = generate_labels(
        rng,
        target_X,
        target_coefficients,
        config.target_prevalence,
        config.shared_variance,
        config.species_specific_noise,
    )

    return TransferDataset(
        source_X=source_X,
        source_y=source_y,
        target_X=target_X,
        target_y=target_y,
        coefficients=coefficients,
        domain_shift=float(domain_shift),
    )


def _median_bandwidth(X: np.ndarray, Y: np.ndarray) -> float:
    sample = np.vstack([X[:MMD_BANDWIDTH_ROWS], Y[:MMD_BANDWIDTH_ROWS]])
    distances = cdist(sample, sample)
    upper = np.sort(distances[np.triu_indices(sample.shape[0], k=1)])
    if upper.size == 0:
        return 1.0
    bandwidth = float(upper[upper.size // 2])
    return bandwidth if bandwidth > FLOAT_NEAR_ZERO else 1.0


def _mean_off_diagonal(kernel: np.ndarray) -> float:
    n = kernel.shape[0]
    if n < 2:
        return 0.0
    return float(kernel[np.triu_indices(n, k=1)].mean())


def maximum_mean_discrepancy(X: np.ndarray, Y: np.ndarray, bandwidth: Optional[float] = None) -> float:
    """
    Gaussian-kernel maximum mean discrepancy between two samples.

    Uses the unbiased within-sample means over distinct pairs and the full
    cross-sample mean. The bandwidth defaults to the median pairwise distance
    among the first 50 rows of each sample.

    Args:
        X: (n, p) first sample.
        Y: (m, p) second sample.
        bandwidth: Kernel bandwidth, median heuristic if ``None``.

    Returns:
        ``sqrt(max(0, MMD^2))``.
    """
    X = np.atleast_2d(np.asarray(X, dtype=float))
    Y = np.atleast_2d(np.asarray(Y, dtype=float))
    if bandwidth is None:
        bandwidth = _median_bandwidth(X, Y)
    scale = 2.0 * bandwidth**2

    k_xx = np.exp(-cdist(X, X, "sqeuclidean") / scale)
    k_yy = np.exp(-cdist(Y, Y, "sqeuclidean") / scale)
    k_xy = np.exp(-cdist(X, Y, "sqeuclidean") / scale)

    mmd_squared = _mean_off_diagonal(k_xx) + _mean_off_diagonal(k_yy) - 2.0 * float(k_xy.mean())
    return float(np.sqrt(max(0.0, mmd_squared)))
