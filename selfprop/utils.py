from dataclasses import dataclass, fields

import numpy as np
import pandas as pd
from scipy import stats

from selfprop.analysis_error import DegenerateFit


def eval_poly(coeffs, x):
    """Evaluates polynomial coefficients given in ascending order, at a
    scalar or elementwise over an array."""
    if len(coeffs) == 0:
        return 0.0
    return np.polynomial.polynomial.polyval(x, coeffs)


def polyfit_ascending(x, y, degree: int, channel: str = "") -> tuple[float, ...]:
    """Least squares polynomial fit, coefficients in ascending order so they
    can be handed to `eval_poly`."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if np.unique(x).size <= degree:
        raise DegenerateFit(
            f"a degree {degree} fit needs more than {degree} distinct x values",
            channel=channel,
        )
    return tuple(float(c) for c in np.polyfit(x, y, degree)[::-1])


@dataclass(frozen=True)
class LineFit:
    """y = slope * x + intercept

    Attributes:
    ----------
    slope (float)
    intercept (float)
    r_squared (float)
        Coefficient of determination of the fit.
    """

    slope: float
    intercept: float
    r_squared: float

    def __call__(self, x):
        return self.slope * x + self.intercept

    def solve(self, y: float, channel: str = "") -> float:
        """x where the line reaches `y`."""
        if self.slope == 0:
            raise DegenerateFit("horizontal fit never crosses the target", channel)
        return (y - self.intercept) / self.slope


def fit_line(x, y, channel: str = "") -> LineFit:
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"{channel}: x and y must have the same length")
    if np.unique(x).size < 2:
        raise DegenerateFit("a line fit needs at least 2 distinct x values", channel)

    result = stats.linregress(x, y)
    r_squared = result.rvalue**2
    if np.ptp(y) == 0:
        # constant y, the fit is exact
        r_squared = 1.0
    return LineFit(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_squared=float(r_squared),
    )


def fit_and_evaluate(x, y, target_x: float, channel: str = "") -> float:
    """Fits y against x with a straight line and evaluates it at `target_x`."""
    return float(fit_line(x, y, channel)(target_x))


def intersect_horizontal(q, force, level: float, channel: str = "") -> float:
    """Fits force against q with a straight line and returns the q at which
    the fit crosses the horizontal line force = level."""
    return float(fit_line(q, force, channel).solve(level, channel))


def empty_frame(schema) -> pd.DataFrame:
    """Empty frame with the columns and dtypes of a dataclass row schema."""
    return pd.DataFrame(
        {f.name: pd.Series(dtype=_dtype(f.type)) for f in fields(schema)}
    )


def schema_dtypes(schema) -> dict:
    return {f.name: _dtype(f.type) for f in fields(schema)}


def _dtype(annotation):
    if annotation is bool:
        return bool
    if annotation is int:
        return np.int64
    return np.float64
