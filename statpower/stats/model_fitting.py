"""
Lightweight classifier fitting and evaluation for simulation iterations.

Fits an L2-regularised logistic regression by batch gradient descent and
scores predicted probabilities with AUC, accuracy and F1.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np
from scipy.special import expit
from scipy.stats import rankdata

SIGMOID_CLIP = 20.0
DEFAULT_LEARNING_RATE = 0.1
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_REGULARIZATION = 0.01
DEFAULT_THRESHOLD = 0.5

METRICS = ("auc", "accuracy", "f1")

__all__ = [
    "LogisticModel",
    "sigmoid",
    "fit_logistic_regression",
    "predict_proba",
    "auc_score",
    "accuracy_score",
    "f1_score",
    "evaluate_metrics",
    "evaluate_transfer",
]


@dataclass(frozen=True)
class LogisticModel:
    """Fitted logistic regression: ``P(y=1) = sigmoid(X @ weights + bias)``."""

    weights: np.ndarray
    bias: float


def sigmoid(z):
    """Logistic function with its argument clipped to ``[-20, 20]``."""
    return expit(np.clip(z, -SIGMOID_CLIP, SIGMOID_CLIP))


def fit_logistic_regression(
    X: np.ndarray,
    y: np.ndarray,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    regularization: float = DEFAULT_REGULARIZATION,
) -> LogisticModel:
    """
    Fit logistic regression by full-batch gradient descent.

    The weight gradient is ``X.T @ (p - y) / n + regularization * w``; the
    bias is not penalised. Weights start at zero.

    Args:
        X: (n, p) feature matrix.
        y: (n,) binary labels.
        learning_rate: Step size.
        max_iterations: Number of gradient steps.
        regularization: L2 penalty strength.

    Returns:
        LogisticModel. An empty *X* gives zero weights and bias.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    n = X.shape[0]
    num_features = X.shape[1] if X.ndim == 2 else 0

    weights = np.zeros(num_features)
    bias = 0.0
    if n == 0:
        return LogisticModel(weights=weights, bias=bias)

    for _ in range(max_iterations):
        errors = sigmoid(X @ weights + bias) - y
        grad_weights = X.T @ errors / n + regularization * weights
        grad_bias = errors.sum() / n
        weights = weights - learning_rate * grad_weights
        bias -= learning_rate * grad_bias

    return LogisticModel(weights=weights, bias=float(bias))


def predict_proba(model: LogisticModel, X: np.ndarray) -> np.ndarray:
    """Predicted probability of the positive class for each row of *X*."""
    return sigmoid(np.asarray(X, dtype=float) @ model.weights + model.bias)


def auc_score(y_true: np.ndarray, scores: np.ndarray) -> float:
    """Area under the ROC curve (Mann-Whitney statistic, ties count 1/2).

    Returns 0.5 when either class is absent.
    """
    y_true = np.asarray(y_true)
    scores = np.asarray(scores, dtype=float)
    positives = y_true == 1
    n_pos = int(positives.sum())
    n_neg = y_true.size - n_pos
    if n_pos == 0 or n_neg == 0:
        return 0.5

    ranks = rankdata(scores)
    rank_sum = ranks[positives].sum()
    return float((rank_sum - n_pos * (n_pos + 1) / 2.0) / (n_pos * n_neg))


def accuracy_score(y_true: np.ndarray, scores: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> float:
    """Fraction of rows whose thresholded score matches the label (0 if empty)."""
    y_true = np.asarray(y_true)
    if y_true.size == 0:
        return 0.0
    predicted = (np.asarray(scores) >= threshold).astype(y_true.dtype)
    return float(np.mean(predicted == y_true))


def f1_score(y_true: np.ndarray, scores: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> float:
    """Harmonic mean of precision and recall at *threshold* (0 if undefined)."""
    y_true = np.asarray(y_true) == 1
    predicted = np.asarray(scores) >= threshold

    tp = int(np.sum(predicted & y_true))
    fp = int(np.sum(predicted & ~y_true))
    fn = int(np.sum(~predicted & y_true))

    precision = tp / (tp + fp) if tp + fp > 0 else 0.0
    recall = tp / (tp + fn) if tp + fn > 0 else 0.0
    if precision + recall == 0:
        return 0.0
    return 2.0 * precision * recall / (precision + recall)


def evaluate_metrics(y_true: np.ndarray, scores: np.ndarray) -> Dict[str, float]:
    """All supported metrics for one set of predictions."""
    return {
        "auc": auc_score(y_true, scores),
        "accuracy": accuracy_score(y_true, scores),
        "f1": f1_score(y_true, scores),
    }


def evaluate_transfer(dataset) -> Dict[str, float]:
    """Train on the source domain of *dataset* and score on its target domain.

    Args:
        dataset: ``TransferDataset`` from ``generate_transfer_data``.

    Returns:
        Dict with ``auc``, ``accuracy`` and ``f1``.
    """
    model = fit_logistic_regression(dataset.source_X, dataset.source_y)
    return evaluate_metrics(dataset.target_y, predict_proba(model, dataset.target_X))
