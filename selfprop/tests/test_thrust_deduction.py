import numpy as np
import pytest
from hypothesis import given, strategies
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.spp_data as spp_data
import selfprop.thrust_deduction as thrust_deduction
from selfprop.analysis_error import (
    DegenerateFit,
    DegenerateFitWarning,
    IncompleteSpeedCoverageWarning,
)

from conftest import FROUDE_NUMBERS, build_row


def make_point(speed_index=1, thrust=10.0, towing_force=2.0, force=2.0, slope=-0.3, corrected=False):
    return build_row(
        spp_data.SelfPropulsionPoint,
        speed_index=speed_index,
        froude_number=FROUDE_NUMBERS[speed_index - 1],
        thrust_at_spp=thrust,
        towing_force=towing_force,
        force_at_zero_thrust=force,
        raw_force_at_zero_thrust=force,
        fit_slope=slope,
        raw_fit_slope=slope,
        correction_applied=corrected,
    )


def test_resistance_equal_to_towing_force():
    result = thrust_deduction.solve(make_point(), resistance=2.0, adjusted=False)
    assert result.t1 == pytest.approx(1.0)
    assert result.t2 == pytest.approx(1.0)


def test_resistance_equal_to_thrust_and_towing_force():
    result = thrust_deduction.solve(make_point(), resistance=12.0, adjusted=False)
    assert result.t1 == pytest.approx(0.0)
    assert result.t2 == pytest.approx(0.0)


def test_force_at_zero_thrust_equal_to_towing_force():
    result = thrust_deduction.solve(make_point(force=2.0), resistance=7.0, adjusted=False)
    assert result.t3 == pytest.approx(1.0)
    assert result.t4 == pytest.approx(1.0)
    assert result.t1 == pytest.approx(0.5)


def test_slope_estimator_needs_the_adjusted_fitting():
    point = make_point(slope=-0.3)
    assert np.isnan(thrust_deduction.solve(point, 7.0, adjusted=False).t5)
    assert thrust_deduction.solve(point, 7.0, adjusted=True).t5 == pytest.approx(0.7)


@given(
    thrust=strategies.floats(min_value=0.5, max_value=100.0),
    towing_force=strategies.floats(min_value=0.0, max_value=20.0),
    value=strategies.floats(min_value=0.0, max_value=100.0),
)
def test_paired_estimators_agree(thrust, towing_force, value):
    t1 = thrust_deduction.from_resistance(thrust, towing_force, value)
    t2 = thrust_deduction.from_resistance_deficit(thrust, towing_force, value)
    t3 = thrust_deduction.from_force_at_zero_thrust(thrust, towing_force, value)
    t4 = thrust_deduction.from_force_deficit(thrust, towing_force, value)
    assert t1 == pytest.approx(t2, abs=1e-9)
    assert t3 == pytest.approx(t4, abs=1e-9)


def test_zero_thrust_is_degenerate():
    with pytest.raises(DegenerateFit) as err:
        thrust_deduction.solve(make_point(speed_index=3, thrust=0.0), 7.0, adjusted=False)
    assert err.value.speed == 3


def test_solve_all_skips_degenerate_speeds():
    spp = DataSet[spp_data.SelfPropulsionPoint](
        [
            make_point(speed_index=1, corrected=True),
            make_point(speed_index=2, thrust=0.0),
        ]
    )

    with pytest.warns(DegenerateFitWarning):
        deductions, skipped = thrust_deduction.solve_all(spp, {1: 7.0, 2: 7.0})

    assert list(deductions.speed_index) == [1]
    assert list(skipped) == [2]
    # one corrected point is enough for the slope estimator
    assert deductions.t5.iloc[0] == pytest.approx(0.7)


def test_summary_needs_every_speed():
    config = analysis_config.AnalysisConfig()
    points = [make_point(speed_index=s, thrust=10.0 + s) for s in range(1, 10)]

    partial, _ = thrust_deduction.solve_all(
        DataSet[spp_data.SelfPropulsionPoint](points[:8]), {s: 7.0 for s in range(1, 10)}
    )
    with pytest.warns(IncompleteSpeedCoverageWarning, match="0.40"):
        assert thrust_deduction.summarize(partial, config) is None

    complete, _ = thrust_deduction.solve_all(
        DataSet[spp_data.SelfPropulsionPoint](points), {s: 7.0 for s in range(1, 10)}
    )
    summary = thrust_deduction.summarize(complete, config)

    assert list(summary.index) == list(thrust_deduction.ESTIMATORS)
    assert list(summary.columns) == ["mean", "std", "min", "max"]
    t1 = [(10.0 + s + 2.0 - 7.0) / (10.0 + s) for s in range(1, 10)]
    assert summary.loc["t1", "mean"] == pytest.approx(np.mean(t1))
    assert summary.loc["t1", "min"] == pytest.approx(min(t1))
    assert summary.loc["t3", "std"] == pytest.approx(0.0)
    assert np.isnan(summary.loc["t5", "mean"])
