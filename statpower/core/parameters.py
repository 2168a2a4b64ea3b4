"""
Test catalog and parameter records for the analytical engine.

``TestType`` is the closed set of supported hypothesis tests.
``TestParameters`` is the immutable record every analytical entry point
receives: four common fields (any one of which may be ``None`` = "solve for
this") plus test-specific design fields with documented defaults.
"""

import math
import re
from dataclasses import MISSING, asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "TestType",
    "TestParameters",
    "UnknownTestError",
    "DesignWarning",
    "EffectSizeConvention",
    "EFFECT_SIZE_CONVENTIONS",
    "effect_size_conventions",
    "stabilize_parameters",
    "COMMON_FIELDS",
]


class UnknownTestError(ValueError):
    """Raised for a test identifier outside the ``TestType`` catalog."""

    def __init__(self, test: Any):
        self.test = test
        valid = ", ".join(t.value for t in TestType)
        super().__init__(f"Unknown test '{test}'. Valid tests: {valid}")


class DesignWarning(UserWarning):
    """A design is outside its family's domain; power is reported as zero."""


class TestType(str, Enum):
    """Identifiers of the supported hypothesis tests."""

    __test__ = False

    ONE_SAMPLE_T = "one-sample-t"
    TWO_SAMPLE_T = "two-sample-t"
    PAIRED_T = "paired-t"
    ANOVA = "anova"
    ANOVA_TWO_WAY = "anova-two-way"
    CORRELATION = "correlation"
    CORRELATION_DIFFERENCE = "correlation-difference"
    CHI_SQUARE_GOF = "chi-square-gof"
    CHI_SQUARE_CONTINGENCY = "chi-square-contingency"
    PROPORTION_TEST = "proportion-test"
    PROPORTION_DIFFERENCE = "proportion-difference"
    SIGN_TEST = "sign-test"
    LINEAR_REGRESSION = "linear-regression"
    MULTIPLE_REGRESSION = "multiple-regression"
    SET_CORRELATION = "set-correlation"
    MULTIVARIATE = "multivariate"
    SEM = "sem"
    MMRM = "mmrm"
    LOGISTIC_REGRESSION = "logistic-regression"

    @classmethod
    def parse(cls, value: Any) -> "TestType":
        """Coerce a string (or ``TestType``) into a catalog member.

        Raises:
            UnknownTestError: If *value* names no supported test.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower().replace("_", "-"))
            except ValueError:
                pass
        raise UnknownTestError(value)


COMMON_FIELDS = ("sample_size", "effect_size", "significance_level", "power")

CORRELATION_LIKE = frozenset({TestType.CORRELATION, TestType.CORRELATION_DIFFERENCE})
VARIANCE_EXPLAINED = frozenset({TestType.LINEAR_REGRESSION, TestType.MULTIPLE_REGRESSION, TestType.SET_CORRELATION})

# Design defaults applied when a field is left as None
_FIELD_DEFAULTS: Dict[str, Any] = {
    "groups": 3,
    "observations": 2,
    "predictors": 3,
    "response_variables": 2,
    "degrees_of_freedom": 10,
}
_TEST_DEFAULTS: Dict[TestType, Dict[str, Any]] = {
    TestType.ANOVA_TWO_WAY: {"groups": 2},
    TestType.CHI_SQUARE_CONTINGENCY: {"groups": 2},
    TestType.MULTIVARIATE: {"groups": 2},
    TestType.LINEAR_REGRESSION: {"predictors": 1},
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_KEY_ALIASES = {"test_type": "test", "alpha": "significance_level", "tail": "tail_type", "tails": "tail_type"}


def _to_snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


@dataclass(frozen=True)
class TestParameters:
    """Immutable parameter record for one analytical calculation.

    Exactly one of the common fields is normally ``None``; that is the
    quantity :func:`statpower.solve` fills in. Design fields left as
    ``None`` resolve to family defaults via :meth:`design_value`.

    Attributes:
        test: Test identifier (``TestType`` or its string value).
        sample_size: Total sample size N.
        effect_size: Standardized effect size in the family's metric.
        significance_level: Type-I error rate alpha.
        power: Target or computed power.
        tail_type: ``"two"`` (default) or ``"one"``; ignored by F and
            chi-squared tests, which are right-tailed.
        groups: Number of groups / factor-A levels / table rows.
        observations: Factor-B levels (two-way ANOVA) or table columns.
        predictors: Number of predictors (regression, set correlation).
        response_variables: Number of dependent variables.
        correlation: Pre/post correlation for the paired t-test.
        degrees_of_freedom: Model degrees of freedom (SEM).
        null_rmsea: RMSEA under the null hypothesis (SEM).
        time_points: Number of repeated measurements (MMRM).
        dropout_rate: Dropout probability per measurement interval (MMRM).
        within_correlation: Compound-symmetry correlation (MMRM).
        baseline_prob: Event probability at the reference level (logistic).
        predictor_type: ``"continuous"`` or ``"binary"`` (logistic).
        predictor_proportion: Share of the sample with a binary predictor = 1.
        predictor_variance: Variance of a continuous predictor.
    """

    __test__ = False

    test: TestType
    sample_size: Optional[float] = None
    effect_size: Optional[float] = None
    significance_level: Optional[float] = 0.05
    power: Optional[float] = None
    tail_type: str = "two"
    groups: Optional[int] = None
    observations: Optional[int] = None
    predictors: Optional[int] = None
    response_variables: Optional[int] = None
    correlation: float = 0.5
    degrees_of_freedom: Optional[float] = None
    null_rmsea: float = 0.0
    time_points: int = 4
    dropout_rate: float = 0.05
    within_correlation: float = 0.5
    baseline_prob: float = 0.5
    predictor_type: str = "continuous"
    predictor_proportion: float = 0.5
    predictor_variance: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "test", TestType.parse(self.test))
        # null design values (e.g. from JSON) fall back to the field default
        for f in fields(self):
            if f.name in COMMON_FIELDS or f.default is MISSING or f.default is None:
                continue
            if getattr(self, f.name) is None:
                object.__setattr__(self, f.name, f.default)
        # "two-sided" / "one-tailed" spellings
        tail = str(self.tail_type).lower().split("-")[0]
        if tail not in ("one", "two"):
            raise ValueError(f"tail_type must be 'one' or 'two', got {self.tail_type!r}")
        object.__setattr__(self, "tail_type", tail)

    @property
    def tails(self) -> int:
        return 2 if self.tail_type == "two" else 1

    @property
    def unresolved(self) -> List[str]:
        """Names of common fields that are still ``None``."""
        return [name for name in COMMON_FIELDS if getattr(self, name) is None]

    def design_value(self, name: str) -> Any:
        """Value of design field *name*, falling back to the family default."""
        value = getattr(self, name)
        if value is not None:
            return value
        return _TEST_DEFAULTS.get(self.test, {}).get(name, _FIELD_DEFAULTS[name])

    def with_values(self, **changes) -> "TestParameters":
        """Return a copy with *changes* applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["test"] = self.test.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestParameters":
        """Build a record from a dict with camelCase or snake_case keys.

        Keys that match no field are ignored.

        Raises:
            UnknownTestError: If the test identifier is missing or unknown.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _to_snake(key)
            name = _KEY_ALIASES.get(name, name)
            if name in known:
                kwargs[name] = value
        if "test" not in kwargs:
            raise UnknownTestError(None)
        if kwargs.get("tail_type") in (1, 2):
            kwargs["tail_type"] = "one" if kwargs["tail_type"] == 1 else "two"
        return cls(**kwargs)


# ============================================================================
# Effect-size conventions
# ============================================================================


@dataclass(frozen=True)
class EffectSizeConvention:
    """Conventional small / medium / large effect sizes for one test."""

    small: float
    medium: float
    large: float
    label: str


_D = EffectSizeConvention(0.2, 0.5, 0.8, "Cohen's d")
_F = EffectSizeConvention(0.1, 0.25, 0.4, "Cohen's f")
_W = EffectSizeConvention(0.1, 0.3, 0.5, "w")
_H = EffectSizeConvention(0.2, 0.5, 0.8, "Cohen's h")
_F2 = EffectSizeConvention(0.02, 0.15, 0.35, "f²")

# Chen, Cohen & Chen (2010): odds ratios 1.68 / 3.47 / 6.71
_LOG_OR = EffectSizeConvention(math.log(1.68), math.log(3.47), math.log(6.71), "log odds ratio")

EFFECT_SIZE_CONVENTIONS: Dict[TestType, EffectSizeConvention] = {
    TestType.ONE_SAMPLE_T: _D,
    TestType.TWO_SAMPLE_T: _D,
    TestType.PAIRED_T: _D,
    TestType.ANOVA: _F,
    TestType.ANOVA_TWO_WAY: _F,
    TestType.CORRELATION: EffectSizeConvention(0.1, 0.3, 0.5, "r"),
    TestType.CORRELATION_DIFFERENCE: EffectSizeConvention(0.1, 0.3, 0.5, "r"),
    TestType.CHI_SQUARE_GOF: _W,
    TestType.CHI_SQUARE_CONTINGENCY: _W,
    TestType.PROPORTION_TEST: _H,
    TestType.PROPORTION_DIFFERENCE: _H,
    TestType.SIGN_TEST: _D,
    TestType.LINEAR_REGRESSION: _F2,
    TestType.MULTIPLE_REGRESSION: _F2,
    TestType.SET_CORRELATION: EffectSizeConvention(0.02, 0.13, 0.26, "f²"),
    TestType.MULTIVARIATE: _F,
    TestType.SEM: EffectSizeConvention(0.05, 0.08, 0.1, "RMSEA"),
    TestType.MMRM: EffectSizeConvention(0.2, 0.5, 0.8, "δ (standardized difference)"),
    TestType.LOGISTIC_REGRESSION: _LOG_OR,
}


def effect_size_conventions(test: Any) -> EffectSizeConvention:
    """Conventional effect sizes for *test*.

    Raises:
        UnknownTestError: If *test* is not in the catalog.
    """
    return EFFECT_SIZE_CONVENTIONS[TestType.parse(test)]


# ============================================================================
# Parameter stabilization
# ============================================================================

_STABLE_RANGES = {
    "significance_level": (0.001, 0.3),
    "power": (0.05, 0.99),
    "groups": (2, 20),
    "predictors": (1, 50),
    "response_variables": (1, 20),
    "degrees_of_freedom": (1, 1000),
    "correlation": (-0.999, 0.999),
}
_SAMPLE_SIZE_RANGE = (4, 10000)
_DECIMALS = 3


def _effect_range(test: TestType):
    if test in CORRELATION_LIKE:
        return (-0.999, 0.999)
    if test is TestType.SEM:
        return (0.001, 0.3)
    if test in VARIANCE_EXPLAINED:
        return (0.001, 1.0)
    return (0.01, 3.0)


def _clamp(value: float, bounds) -> float:
    return min(bounds[1], max(bounds[0], value))


def stabilize_parameters(params: TestParameters) -> TestParameters:
    """Clamp a record's fields into numerically safe ranges.

    Unresolved (``None``) and non-finite values are left untouched, so the
    engine can still report them as missing.

    Args:
        params: Record to stabilize.

    Returns:
        A new record; *params* is not modified.
    """
    changes: Dict[str, Any] = {}

    n = params.sample_size
    if n is not None and math.isfinite(n):
        changes["sample_size"] = int(round(_clamp(n, _SAMPLE_SIZE_RANGE)))

    es = params.effect_size
    if es is not None and math.isfinite(es):
        lo, hi = _effect_range(params.test)
        if lo > 0:
            es = math.copysign(_clamp(abs(es), (lo, hi)), es)
        else:
            es = _clamp(es, (lo, hi))
        changes["effect_size"] = round(es, _DECIMALS)

    for name, bounds in _STABLE_RANGES.items():
        value = getattr(params, name)
        if value is None or not math.isfinite(value):
            continue
        clamped = _clamp(value, bounds)
        if isinstance(value, int) and not isinstance(value, bool):
            changes[name] = int(round(clamped))
        else:
            changes[name] = round(clamped, _DECIMALS)

    return params.with_values(**changes)
