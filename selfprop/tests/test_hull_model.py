import numpy as np
import pytest
from hypothesis import given, strategies

import selfprop.analysis_config as analysis_config
import selfprop.hull_model as hull_model


@given(reynolds_number=strategies.floats(min_value=1e5, max_value=5e9))
def test_friction_coefficient_decreases_with_reynolds_number(reynolds_number: float):
    assert hull_model.friction_coefficient(
        2 * reynolds_number
    ) < hull_model.friction_coefficient(reynolds_number)


def test_friction_coefficient_branches_meet_at_threshold():
    below = hull_model.friction_coefficient(
        np.nextafter(hull_model.GRIGSON_REYNOLDS_THRESHOLD, 0)
    )
    above = hull_model.friction_coefficient(hull_model.GRIGSON_REYNOLDS_THRESHOLD)
    assert np.isclose(below, above, rtol=1e-3)
    assert 0.0025 < above < 0.0035


def test_friction_coefficient_rejects_tiny_reynolds_number():
    with pytest.raises(ValueError):
        hull_model.friction_coefficient(1.0)


def test_froude_and_reynolds_numbers():
    assert np.isclose(hull_model.froude_number(np.sqrt(9.806 * 4.3), 4.3, 9.806), 1.0)
    assert np.isclose(hull_model.reynolds_number(2.0, 4.3, 1e-6), 8.6e6)
    with pytest.raises(ValueError):
        hull_model.reynolds_number(2.0, 4.3, 0.0)


@given(
    speed=strategies.floats(min_value=0.5, max_value=4.0),
    coefficient=strategies.floats(min_value=-0.002, max_value=0.004),
)
def test_towing_force(speed: float, coefficient: float):
    force = hull_model.towing_force(998.5, speed, 1.501, coefficient)
    assert np.isclose(force, 0.5 * 998.5 * speed**2 * 1.501 * coefficient)


def test_towing_force_coefficient():
    assert np.isclose(
        hull_model.towing_force_coefficient(0.003, 0.0017, 1.18, 0.00035),
        1.18 * 0.0013 - 0.00035,
    )


def test_blockage_corrected_speed_is_faster():
    config = analysis_config.AnalysisConfig()
    speed = 2.0
    cf = 0.003
    resistance = 20.0

    corrected = hull_model.blockage_corrected_speed(
        speed,
        resistance,
        cf,
        998.5,
        9.806,
        config.model,
        config.tank,
    )

    area_ratio = 0.024 / (3.5 * 1.45)
    depth_froude_number = speed / np.sqrt(9.806 * 1.45)
    viscous = cf * 0.5 * 998.5 * 1.501 * speed**2
    expected = speed * (
        1
        + area_ratio / (1 - area_ratio - depth_froude_number**2)
        + (1 - viscous / resistance) * (2 / 3) * depth_froude_number**10
    )
    assert corrected > speed
    assert np.isclose(corrected, expected, rtol=1e-12)

    with pytest.raises(ValueError):
        hull_model.blockage_corrected_speed(
            speed, 0.0, cf, 998.5, 9.806, config.model, config.tank
        )


def test_full_scale_coefficients_add_up():
    config = analysis_config.AnalysisConfig()
    reynolds_number = 6e8
    coefficients = hull_model.full_scale_coefficients(0.0023, reynolds_number, config)

    assert coefficients.residual == 0.0023
    assert np.isclose(
        coefficients.total,
        1.18 * coefficients.friction
        + coefficients.roughness
        + coefficients.correlation
        + coefficients.residual
        + coefficients.air,
    )
    assert np.isclose(
        coefficients.correlation, (5.68 - 0.6 * np.log10(reynolds_number)) * 1e-3
    )
    assert np.isclose(
        coefficients.air,
        0.446 * 1.2041 * (341.5 / 2) / (1025.0187 * 1.501 * 21.6**2),
    )
    assert coefficients.roughness > 0


def test_model_scale_coefficients():
    resistance = 0.006 * 0.5 * 998.5 * 1.501 * 2.0**2
    reynolds_number = hull_model.reynolds_number(2.0, 4.3, 1.0411e-6)
    coefficients = hull_model.model_scale_coefficients(
        resistance, 998.5, 2.0, 1.501, reynolds_number, 1.18
    )

    assert np.isclose(coefficients.total, 0.006)
    assert np.isclose(coefficients.total, 1.18 * coefficients.friction + coefficients.residual)
    assert coefficients.roughness == coefficients.correlation == coefficients.air == 0.0
    assert np.isclose(
        hull_model.resistance(coefficients.total, 998.5, 2.0, 1.501), resistance
    )
