import numpy as np
import pytest
from hypothesis import given, strategies

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
from selfprop.flow_model import Side
from selfprop.utils import eval_poly


def test_calibration_regimes():
    calibration = flow_model.JUNE_2013_CALIBRATION
    above = calibration.mass_flow_rate(2.5, Side.PORT)
    below = calibration.mass_flow_rate(1.5, Side.PORT)

    assert np.isclose(above, eval_poly(calibration.port, 2.5))
    assert np.isclose(below, eval_poly(calibration.low_port, 1.5))
    assert np.isclose(
        calibration.mass_flow_rate(1.86, Side.STARBOARD),
        eval_poly(calibration.low_starboard, 1.86),
    )


def test_sept_2014_calibration_is_per_side():
    calibration = flow_model.SEPT_2014_CALIBRATION
    assert calibration.threshold is None
    assert np.isclose(
        calibration.mass_flow_rate(2.0, Side.PORT),
        -5.1976 + 7.8517 * 2 - 2.9517 * 4 + 0.5718 * 8 - 0.0421 * 16,
    )
    assert calibration.mass_flow_rate(2.0, Side.PORT) != calibration.mass_flow_rate(
        2.0, Side.STARBOARD
    )


def test_literature_calibration():
    assert (
        flow_model.literature_calibration(analysis_config.FlowCalibration.JUNE_2013)
        is flow_model.JUNE_2013_CALIBRATION
    )
    assert (
        flow_model.literature_calibration(analysis_config.FlowCalibration.SEPT_2014)
        is flow_model.SEPT_2014_CALIBRATION
    )


def test_fit_calibration_recovers_quartic():
    port = (-5.0, 7.0, -3.0, 0.5, -0.04)
    stbd = (-6.0, 11.0, -5.0, 1.1, -0.09)
    voltage = np.linspace(1.0, 4.0, 12)

    calibration = flow_model.fit_calibration(
        voltage,
        [eval_poly(port, v) for v in voltage],
        voltage,
        [eval_poly(stbd, v) for v in voltage],
    )

    assert np.isclose(
        calibration.mass_flow_rate(2.2, Side.PORT), eval_poly(port, 2.2), rtol=1e-8
    )
    assert np.isclose(
        calibration.mass_flow_rate(2.2, Side.STARBOARD),
        eval_poly(stbd, 2.2),
        rtol=1e-8,
    )


@given(
    flow_rate=strategies.floats(min_value=1e-4, max_value=1e-2),
    exponent=strategies.floats(min_value=4.0, max_value=9.0),
)
def test_wake_fraction_decreases_with_flow_rate(flow_rate: float, exponent: float):
    boundary_layer_flow_rate = 5e-3
    w = flow_model.wake_fraction(flow_rate, boundary_layer_flow_rate, exponent)
    w_more = flow_model.wake_fraction(1.5 * flow_rate, boundary_layer_flow_rate, exponent)
    assert w_more < w < 1.0


def test_wake_fraction_limits():
    exponent = 6.672
    assert flow_model.wake_fraction(0.0, 1e-3, exponent) == 1.0

    # the inlet swallows the velocity deficit exactly when w = 0
    boundary_layer_flow_rate = 4e-3
    flow_rate = boundary_layer_flow_rate * ((exponent + 2) / (exponent + 1)) ** (
        exponent + 1
    )
    assert np.isclose(
        flow_model.wake_fraction(flow_rate, boundary_layer_flow_rate, exponent),
        0.0,
        atol=1e-12,
    )

    with pytest.raises(ValueError):
        flow_model.wake_fraction(-1e-3, 1e-3, exponent)
    with pytest.raises(ValueError):
        flow_model.wake_fraction(1e-3, 0.0, exponent)


def test_boundary_layer_flow_rate():
    assert np.isclose(
        flow_model.boundary_layer_flow_rate(2.0, 1.3, 0.05, 0.04, 7.0),
        2.0 * 1.3 * 0.05 * 0.04 * 7.0 / 8.0,
    )


def test_gross_and_jet_thrust():
    assert np.isclose(flow_model.gross_thrust(3.0, 4.0, 1.5), 7.5)
    assert np.isclose(flow_model.jet_thrust(3.0, 4.0), 12.0)
