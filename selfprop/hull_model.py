import numpy as np

from dataclasses import dataclass
from typeguard import typechecked

import selfprop.analysis_config as analysis_config


GRIGSON_REYNOLDS_THRESHOLD = 1e7


@typechecked
def froude_number(speed: float, length: float, gravity: float) -> float:
    return speed / np.sqrt(gravity * length)


@typechecked
def reynolds_number(speed: float, length: float, viscosity: float) -> float:
    if viscosity <= 0:
        raise ValueError("Parameter 'viscosity' must be > 0.")
    return speed * length / viscosity


@typechecked
def friction_coefficient(reynolds_number: float) -> float:
    """Grigson (1993) frictional resistance coefficient.

    The same correlation, and the same 1e7 threshold, is used at model and
    full scale.

    Args:
        reynolds_number (float): Reynolds number based on waterline length

    Returns:
        float: frictional resistance coefficient CF
    """
    if reynolds_number <= 10:
        raise ValueError("Parameter 'reynolds_number' must be > 10.")

    x = np.log10(np.log10(reynolds_number))
    if reynolds_number < GRIGSON_REYNOLDS_THRESHOLD:
        exponent = 2.98651 - 10.8843 * x + 5.15283 * x**2
    else:
        exponent = -9.57459 + 26.6084 * x - 30.8285 * x**2 + 10.8914 * x**3
    return float(10**exponent)


@typechecked
def towing_force_coefficient(
    model_cf: float, full_scale_cf: float, form_factor: float, ca: float
) -> float:
    return form_factor * (model_cf - full_scale_cf) - ca


@typechecked
def towing_force(
    density: float, speed: float, wetted_surface_area: float, coefficient: float
) -> float:
    """Skin friction correction force FD applied to the self-propelled model."""
    return 0.5 * density * speed**2 * wetted_surface_area * coefficient


@typechecked
def blockage_corrected_speed(
    speed: float,
    total_resistance: float,
    model_cf: float,
    density: float,
    gravity: float,
    model: analysis_config.ModelParticulars,
    tank: analysis_config.TowingTank,
) -> float:
    """Schuster (1955/56) blockage and shallow water speed correction.

    Args:
        speed (float): measured carriage speed, in m/s
        total_resistance (float): bare hull resistance at that speed, in N
        model_cf (float): model frictional resistance coefficient
        density (float): tank water density, in kg/m^3
        gravity (float): gravitational acceleration, in m/s^2
        model (ModelParticulars): model particulars
        tank (TowingTank): tank dimensions

    Returns:
        float: blockage corrected speed, in m/s
    """
    if total_resistance <= 0:
        raise ValueError("Parameter 'total_resistance' must be > 0.")

    area_ratio = model.max_section_area / tank.cross_section_area
    depth_froude_number = speed / np.sqrt(gravity * tank.depth)
    viscous_resistance = (
        model_cf * 0.5 * density * model.wetted_surface_area * speed**2
    )

    speed_ratio = area_ratio / (1 - area_ratio - depth_froude_number**2) + (
        1 - viscous_resistance / total_resistance
    ) * (2 / 3) * depth_froude_number**10

    return speed * (1 + speed_ratio)


@typechecked
def roughness_allowance(
    hull_roughness: float, length: float, reynolds_number: float
) -> float:
    """Bowden-Davison roughness allowance, ITTC 1978."""
    return (
        0.044
        * ((hull_roughness / length) ** (1 / 3) - 10 * reynolds_number ** (-1 / 3))
        + 0.000125
    )


@typechecked
def correlation_coefficient(reynolds_number: float) -> float:
    return (5.68 - 0.6 * np.log10(reynolds_number)) * 1e-3


@typechecked
def air_resistance_coefficient(
    air: analysis_config.AirResistance,
    air_density: float,
    water_density: float,
    wetted_surface_area: float,
) -> float:
    return (
        air.drag_coefficient
        * (air_density * air.projected_area)
        / (water_density * wetted_surface_area)
    )


@dataclass(frozen=True)
class ResistanceCoefficients:
    """Resistance build-up at one speed.

    Attributes:
    ----------
    friction (float)
        CF from the Grigson correlation.
    roughness (float)
        Roughness allowance dCF, zero at model scale.
    correlation (float)
        Correlation coefficient Ca, zero at model scale.
    air (float)
        Air resistance coefficient CAA, zero at model scale.
    residual (float)
        Residual resistance coefficient CR, carried from model scale.
    total (float)
        Total resistance coefficient CT.
    """

    friction: float
    roughness: float
    correlation: float
    air: float
    residual: float
    total: float


@typechecked
def model_scale_coefficients(
    total_resistance: float,
    density: float,
    speed: float,
    wetted_surface_area: float,
    reynolds_number: float,
    form_factor: float,
) -> ResistanceCoefficients:
    total = total_resistance / (0.5 * density * wetted_surface_area * speed**2)
    friction = friction_coefficient(reynolds_number)
    return ResistanceCoefficients(
        friction=friction,
        roughness=0.0,
        correlation=0.0,
        air=0.0,
        residual=total - form_factor * friction,
        total=total,
    )


@typechecked
def full_scale_coefficients(
    residual: float,
    reynolds_number: float,
    config: analysis_config.AnalysisConfig,
) -> ResistanceCoefficients:
    """CT = (1+k) CF + dCF + Ca + CR + CAA, with CR equal at both scales."""
    model = config.model
    friction = friction_coefficient(reynolds_number)
    roughness = roughness_allowance(
        model.hull_roughness, model.full_scale_waterline_length, reynolds_number
    )
    correlation = correlation_coefficient(reynolds_number)
    air = air_resistance_coefficient(
        config.air,
        config.constants.air_density,
        config.constants.salt_water_density,
        model.full_scale_wetted_surface_area,
    )
    total = model.form_factor * friction + roughness + correlation + residual + air
    return ResistanceCoefficients(
        friction=friction,
        roughness=roughness,
        correlation=correlation,
        air=air,
        residual=residual,
        total=total,
    )


@typechecked
def resistance(
    coefficient: float, density: float, speed: float, wetted_surface_area: float
) -> float:
    return 0.5 * density * speed**2 * wetted_surface_area * coefficient
