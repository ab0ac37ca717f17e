from dataclasses import dataclass
from enum import Enum

import numpy as np
from typeguard import typechecked

import selfprop.analysis_config as analysis_config
from selfprop.utils import eval_poly, polyfit_ascending


class Side(Enum):
    PORT = "port"
    STARBOARD = "stbd"


@dataclass(frozen=True)
class KielProbeCalibration:
    """Kiel probe voltage to waterjet mass flow rate conversion.

    Coefficients are in ascending order. Below `threshold` volts the
    `low_*` coefficients are used instead, when given.

    Attributes:
    ----------
    port (tuple[float, ...])
        Port waterjet coefficients, mass flow rate in kg/s.
    starboard (tuple[float, ...])
        Starboard waterjet coefficients, mass flow rate in kg/s.
    threshold (float | None)
        Voltage separating the two regimes, in V.
    low_port (tuple[float, ...])
    low_starboard (tuple[float, ...])
    """

    port: tuple[float, ...]
    starboard: tuple[float, ...]
    threshold: float | None = None
    low_port: tuple[float, ...] = ()
    low_starboard: tuple[float, ...] = ()

    @typechecked
    def mass_flow_rate(self, voltage: float, side: Side) -> float:
        """Solves the mass flow rate (in kg/s) for a kiel probe voltage (in V)"""
        if side is Side.PORT:
            coeffs, low_coeffs = self.port, self.low_port
        else:
            coeffs, low_coeffs = self.starboard, self.low_starboard

        if self.threshold is not None and voltage <= self.threshold:
            coeffs = low_coeffs

        return float(eval_poly(coeffs, voltage))


# Calibrations of September 2014, one quartic per waterjet.
SEPT_2014_CALIBRATION = KielProbeCalibration(
    port=(-5.1976, 7.8517, -2.9517, 0.5718, -0.0421),
    starboard=(-6.8484, 11.0548, -4.9878, 1.1216, -0.0942),
)

# June 2013, same curve for both waterjets, split at 1.86 V.
JUNE_2013_CALIBRATION = KielProbeCalibration(
    port=(-2.6737, 4.3652, -1.0326, 0.1133),
    starboard=(-2.6737, 4.3652, -1.0326, 0.1133),
    threshold=1.86,
    low_port=(-19.488, 45.647, -41.064, 19.255, -4.5094, 0.4186),
    low_starboard=(-19.488, 45.647, -41.064, 19.255, -4.5094, 0.4186),
)


def literature_calibration(
    era: analysis_config.FlowCalibration,
) -> KielProbeCalibration:
    if era is analysis_config.FlowCalibration.JUNE_2013:
        return JUNE_2013_CALIBRATION
    return SEPT_2014_CALIBRATION


def fit_calibration(
    port_voltage, port_mass_flow_rate, starboard_voltage, starboard_mass_flow_rate
) -> KielProbeCalibration:
    """Quartic calibration fitted to measured (voltage, mass flow rate) points."""
    return KielProbeCalibration(
        port=polyfit_ascending(port_voltage, port_mass_flow_rate, 4, "kiel probe port"),
        starboard=polyfit_ascending(
            starboard_voltage, starboard_mass_flow_rate, 4, "kiel probe stbd"
        ),
    )


@typechecked
def boundary_layer_flow_rate(
    speed: float,
    width_factor: float,
    pump_diameter: float,
    thickness: float,
    exponent: float,
) -> float:
    """Volume flow rate inside the boundary layer ahead of the inlet,
    assuming a power law velocity profile of exponent 1/n."""
    return speed * width_factor * pump_diameter * thickness * (exponent / (exponent + 1))


@typechecked
def wake_fraction(
    flow_rate: float, boundary_layer_flow_rate: float, exponent: float
) -> float:
    """Volumetric wake fraction of an inlet ingesting `flow_rate` from a
    power law boundary layer.

    Args:
        flow_rate (float): waterjet volume flow rate, in m^3/s
        boundary_layer_flow_rate (float): flow rate inside the boundary
            layer over the capture width, in m^3/s
        exponent (float): power law exponent n

    Returns:
        float: wake fraction w
    """
    if boundary_layer_flow_rate <= 0:
        raise ValueError("Parameter 'boundary_layer_flow_rate' must be > 0.")
    if flow_rate < 0:
        raise ValueError("Parameter 'flow_rate' must be >= 0.")

    return 1 - ((exponent + 1) / (exponent + 2)) * (
        flow_rate / boundary_layer_flow_rate
    ) ** (1 / (exponent + 1))


@typechecked
def gross_thrust(
    mass_flow_rate: float, jet_velocity: float, inlet_velocity: float
) -> float:
    """TG = rho Q (vj - vi)"""
    return mass_flow_rate * (jet_velocity - inlet_velocity)


@typechecked
def jet_thrust(mass_flow_rate: float, jet_velocity: float) -> float:
    """TG = rho Q vj"""
    return mass_flow_rate * jet_velocity
