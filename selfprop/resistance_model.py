from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np
from typeguard import typechecked

from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.hull_model as hull_model
from selfprop.analysis_error import MissingExternalDataset
from selfprop.utils import eval_poly, polyfit_ascending


@dataclass
class BareHullResistance:
    froude_number: np.float64
    resistance: np.float64
    corrected_resistance: np.float64
    full_scale_speed_knots: np.float64


# Annotation only.
BareHullResistanceDataSet = DataSet[BareHullResistance]


class ResistanceModel(ABC):
    """Bare hull model resistance from the companion resistance test."""

    @typechecked
    @abstractmethod
    def solve(self, froude_number: float, speed: float) -> BareHullResistance:
        """Bare hull resistance at a Froude number.

        Args:
            froude_number (float): Froude number of the speed group
            speed (float): model speed of the speed group, in m/s

        Returns:
            BareHullResistance: uncorrected and temperature corrected
                resistance, in N
        """
        ...

    def table(self, froude_numbers, speeds) -> BareHullResistanceDataSet:
        return DataSet[BareHullResistance](
            [
                self.solve(float(fr), float(v))
                for fr, v in zip(froude_numbers, speeds)
            ]
        )


class TabulatedResistance(ResistanceModel):
    """Resistance given directly per rounded Froude number, no correction."""

    @typechecked
    def __init__(
        self,
        resistances: dict[float, float],
        config: analysis_config.AnalysisConfig,
    ):
        self.resistances = {round(fr, 2): r for fr, r in resistances.items()}
        self.config = config

    @typechecked
    def solve(self, froude_number: float, speed: float) -> BareHullResistance:
        key = round(froude_number, 2)
        if key not in self.resistances:
            raise MissingExternalDataset(f"bare hull resistance at Fr={key:.2f}")

        resistance = np.float64(self.resistances[key])
        return BareHullResistance(
            froude_number=np.float64(froude_number),
            resistance=resistance,
            corrected_resistance=resistance,
            full_scale_speed_knots=np.float64(
                _full_scale_knots(froude_number, self.config)
            ),
        )


@dataclass
class TemperatureCorrectedResistance(ResistanceModel):
    """Polynomial fit of the resistance test, corrected for the difference
    in water temperature between the resistance and self-propulsion tests.

    Attributes:
    ----------
    froude_numbers (np.ndarray)
        Froude numbers of the resistance test runs.
    resistances (np.ndarray)
        Measured total model resistance, in N.
    config (AnalysisConfig)
        Self-propulsion test configuration, its water properties are the
        target of the correction.
    test_viscosity (float)
        Kinematic viscosity during the resistance test, in m^2/s.
    test_density (float)
        Water density during the resistance test, in kg/m^3.
    degree (int)
        Degree of the resistance against Froude number fit.
    """

    froude_numbers: np.ndarray
    resistances: np.ndarray
    config: analysis_config.AnalysisConfig
    test_viscosity: float = 1.0675e-6
    test_density: float = 998.6897
    degree: int = 5
    coefficients: tuple[float, ...] = field(init=False)

    def __post_init__(self):
        if len(self.froude_numbers) != len(self.resistances):
            raise ValueError("Froude numbers and resistances must have the same length.")
        self.coefficients = polyfit_ascending(
            self.froude_numbers, self.resistances, self.degree, "bare hull resistance"
        )

    @typechecked
    def solve(self, froude_number: float, speed: float) -> BareHullResistance:
        model = self.config.model
        constants = self.config.constants

        fitted = float(eval_poly(self.coefficients, froude_number))

        test_cf = hull_model.friction_coefficient(
            hull_model.reynolds_number(
                speed, model.waterline_length, self.test_viscosity
            )
        )
        spt_cf = hull_model.friction_coefficient(
            hull_model.reynolds_number(
                speed, model.waterline_length, constants.fresh_water_viscosity
            )
        )
        test_ct = fitted / (
            0.5 * self.test_density * model.wetted_surface_area * speed**2
        )
        residual = test_ct - model.form_factor * test_cf

        corrected = (
            (model.form_factor * spt_cf + residual)
            / (model.form_factor * test_cf + residual)
            * fitted
        )

        return BareHullResistance(
            froude_number=np.float64(froude_number),
            resistance=np.float64(fitted),
            corrected_resistance=np.float64(corrected),
            full_scale_speed_knots=np.float64(
                _full_scale_knots(froude_number, self.config)
            ),
        )


def _full_scale_knots(froude_number: float, config: analysis_config.AnalysisConfig):
    length = config.model.full_scale_waterline_length
    return froude_number * np.sqrt(config.constants.gravity * length) / analysis_config.KNOT
