from dataclasses import dataclass

import numpy as np
from typeguard import typechecked

from selfprop.utils import eval_poly, polyfit_ascending


@dataclass(frozen=True, eq=False)
class PumpBenchmark:
    """Manufacturer pump curve measured at one shaft speed.

    Attributes:
    ----------
    flow_rate (np.ndarray)
        Volume flow rate, in m^3/s.
    head (np.ndarray)
        Pump head, in m.
    efficiency (np.ndarray)
        Pump efficiency, between 0.0 and 1.0.
    shaft_speed (float)
        Shaft speed of the measurements, in RPM.
    """

    flow_rate: np.ndarray
    head: np.ndarray
    efficiency: np.ndarray
    shaft_speed: float = 568.0

    def __post_init__(self):
        if not (len(self.flow_rate) == len(self.head) == len(self.efficiency)):
            raise ValueError("Benchmark columns must have the same length.")
        if self.shaft_speed <= 0:
            raise ValueError("Parameter 'shaft_speed' must be > 0.")

    @typechecked
    def scaled(self, shaft_speed: float) -> tuple[np.ndarray, np.ndarray]:
        """Affinity laws for the same pump at another shaft speed:
        Q ~ n and H ~ n^2, efficiency unchanged.

        Returns:
            flow rate and head at `shaft_speed`
        """
        ratio = shaft_speed / self.shaft_speed
        return self.flow_rate * ratio, self.head * ratio**2


@dataclass(frozen=True)
class PumpCurveFit:
    """Head and efficiency polynomials in volume flow rate (ascending
    coefficients) valid at one full scale shaft speed."""

    shaft_speed: float
    head_coefficients: tuple[float, ...]
    efficiency_coefficients: tuple[float, ...]

    @typechecked
    def head(self, flow_rate: float) -> float:
        return float(eval_poly(self.head_coefficients, flow_rate))

    @typechecked
    def efficiency(self, flow_rate: float) -> float:
        return float(eval_poly(self.efficiency_coefficients, flow_rate))


@dataclass(frozen=True)
class PumpCurveModel:
    benchmark: PumpBenchmark
    head_degree: int = 4
    efficiency_degree: int = 4

    @typechecked
    def solve(self, shaft_speed: float) -> PumpCurveFit:
        """Pump curve fits at a full scale shaft speed (in RPM)"""
        if shaft_speed <= 0:
            raise ValueError("Parameter 'shaft_speed' must be > 0.")

        flow_rate, head = self.benchmark.scaled(shaft_speed)
        return PumpCurveFit(
            shaft_speed=shaft_speed,
            head_coefficients=polyfit_ascending(
                flow_rate, head, self.head_degree, "pump head"
            ),
            efficiency_coefficients=polyfit_ascending(
                flow_rate,
                self.benchmark.efficiency,
                self.efficiency_degree,
                "pump efficiency",
            ),
        )
