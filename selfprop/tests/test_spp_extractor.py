import numpy as np
import pytest
from hypothesis import given, settings, strategies
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.run_data as run_data
from selfprop.analysis_error import DegenerateFit, DegenerateFitWarning
from selfprop.flow_model import KielProbeCalibration
from selfprop.spp_extractor import SppExtractor

from conftest import build_row


def make_group(gross_thrust, drag, towing_force=3.0, port_share=0.5, speed_index=1):
    records = []
    for i, (thrust, force) in enumerate(zip(gross_thrust, drag)):
        share = port_share[i] if isinstance(port_share, (list, tuple)) else port_share
        records.append(
            build_row(
                run_data.RunRecord,
                run=i + 1,
                froude_number=0.24,
                speed=1.5584,
                drag=force,
                towing_force=towing_force,
                gross_thrust_total=thrust,
                gross_thrust_port=share * thrust,
                gross_thrust_stbd=(1 - share) * thrust,
                # channels linear in gross thrust
                shaft_speed_port=1000.0 + 50.0 * thrust,
                shaft_speed_stbd=1010.0 + 50.0 * thrust,
                torque_port=0.02 * thrust,
                torque_stbd=0.021 * thrust,
                kiel_probe_port=1.0 + 0.1 * thrust,
                kiel_probe_stbd=1.1 + 0.1 * thrust,
            )
        )
    return run_data.SpeedGroup(
        speed_index=speed_index,
        froude_number=0.24,
        runs=DataSet[run_data.RunRecord](records),
    )


@given(
    slope=strategies.floats(min_value=-0.9, max_value=-0.1),
    intercept=strategies.floats(min_value=5.0, max_value=50.0),
)
@settings(deadline=None)
def test_exact_line_is_recovered(slope: float, intercept: float):
    config = analysis_config.AnalysisConfig(speed_overrides={})
    linear_calibration = KielProbeCalibration(port=(0.0, 1.5), starboard=(0.0, 1.5))
    thrust = np.array([4.0, 6.0, 8.0])
    group = make_group(thrust, slope * thrust + intercept, towing_force=3.0)

    point = SppExtractor(config, linear_calibration).solve(group)

    assert point.thrust_at_zero_drag == pytest.approx(-intercept / slope, rel=1e-9)
    assert point.force_at_zero_thrust == pytest.approx(intercept, rel=1e-9)
    assert point.raw_force_at_zero_thrust == point.force_at_zero_thrust
    assert point.fit_slope == pytest.approx(slope, rel=1e-9)
    assert point.fit_r_squared == pytest.approx(1.0)
    assert point.thrust_at_spp_offset == pytest.approx(-intercept / slope - 3.0, rel=1e-9)
    assert point.thrust_at_spp_intersection == pytest.approx(
        (3.0 - intercept) / slope, rel=1e-9
    )
    assert point.thrust_at_spp == point.thrust_at_spp_intersection
    assert not point.correction_applied


def test_channels_at_the_self_propulsion_point(linear_calibration):
    config = analysis_config.AnalysisConfig(speed_overrides={})
    thrust = np.array([4.0, 6.0, 8.0])
    # drag = -0.5 T + 6, crosses the 3 N towing force at T = 6
    group = make_group(thrust, -0.5 * thrust + 6.0, towing_force=3.0)

    point = SppExtractor(config, linear_calibration).solve(group)
    spp = 6.0

    assert point.thrust_at_spp == pytest.approx(spp)
    assert point.towing_force == pytest.approx(3.0)
    assert point.shaft_speed_port == pytest.approx(1000.0 + 50.0 * spp)
    assert point.shaft_speed_stbd == pytest.approx(1010.0 + 50.0 * spp)
    assert point.shaft_speed_mean == pytest.approx(1005.0 + 50.0 * spp)
    assert point.torque_port == pytest.approx(0.02 * spp)
    assert point.kiel_probe_stbd == pytest.approx(1.1 + 0.1 * spp)
    assert point.mass_flow_rate_port == pytest.approx(1.5 * (1.0 + 0.1 * spp))
    assert point.flow_rate_stbd == pytest.approx(1.5 * (1.1 + 0.1 * spp) / 998.5048)
    assert point.thrust_split_ratio == pytest.approx(0.5)
    assert point.thrust_port + point.thrust_stbd == pytest.approx(spp)


def test_offset_method(linear_calibration):
    config = analysis_config.AnalysisConfig(
        speed_overrides={}, spp_method=analysis_config.SppMethod.ZERO_DRAG_OFFSET
    )
    thrust = np.array([4.0, 6.0, 8.0])
    group = make_group(thrust, -0.5 * thrust + 6.0, towing_force=3.0)

    point = SppExtractor(config, linear_calibration).solve(group)
    assert point.thrust_at_zero_drag == pytest.approx(12.0)
    assert point.thrust_at_spp == pytest.approx(9.0)
    assert point.thrust_at_spp_intersection == pytest.approx(6.0)


def test_row_override_excludes_outlier_runs(linear_calibration):
    override = analysis_config.SpeedOverride(first_row=3, last_row=6, ratio_row=3)
    config = analysis_config.AnalysisConfig(speed_overrides={4: override})

    thrust = np.array([2.0, 3.0, 4.0, 6.0, 8.0, 10.0])
    drag = -0.5 * thrust + 6.0
    drag[:2] = [40.0, -40.0]
    shares = [0.9, 0.1, 0.45, 0.5, 0.5, 0.5]
    group = make_group(thrust, drag, port_share=shares, speed_index=4)

    extractor = SppExtractor(config, linear_calibration)
    assert list(extractor.fit_rows(group).run) == [3, 4, 5, 6]
    assert extractor.thrust_split_ratio(group) == pytest.approx(0.45)

    point = extractor.solve(group)
    assert point.force_at_zero_thrust == pytest.approx(6.0)
    assert point.thrust_at_spp == pytest.approx(6.0)
    assert point.thrust_port == pytest.approx(0.45 * 6.0)

    # other speeds use every run and the mean split
    other = make_group(thrust[2:], drag[2:], port_share=shares[2:], speed_index=5)
    assert extractor.thrust_split_ratio(other) == pytest.approx((0.45 + 1.5) / 4)


def test_override_larger_than_group_drops_the_speed(linear_calibration):
    override = analysis_config.SpeedOverride(first_row=3, last_row=6, ratio_row=3)
    config = analysis_config.AnalysisConfig(speed_overrides={4: override})
    thrust = np.array([4.0, 6.0, 8.0])
    group = make_group(thrust, -0.5 * thrust + 6.0, speed_index=4)

    extractor = SppExtractor(config, linear_calibration)
    with pytest.raises(DegenerateFit) as err:
        extractor.solve(group)
    assert err.value.speed == 4

    healthy = make_group(thrust, -0.5 * thrust + 6.0, speed_index=1)
    with pytest.warns(DegenerateFitWarning):
        points, skipped = extractor.solve_all([healthy, group])
    assert list(points.speed_index) == [1]
    assert list(skipped) == [4]


def test_single_thrust_value_is_degenerate(linear_calibration):
    config = analysis_config.AnalysisConfig(speed_overrides={})
    group = make_group([5.0, 5.0, 5.0], [1.0, 2.0, 3.0])

    with pytest.raises(DegenerateFit) as err:
        SppExtractor(config, linear_calibration).solve(group)
    assert err.value.channel == "gross thrust"
    assert err.value.speed == 1


def test_intersection_crosses_each_channel_with_the_towing_force(linear_calibration):
    config = analysis_config.AnalysisConfig(speed_overrides={})
    thrust = np.array([10.0, 12.0, 14.0, 16.0])
    group = make_group(thrust, [3.1, 2.3, 1.2, 0.5], towing_force=1.5)
    runs = group.runs.to_dataframe().assign(
        shaft_speed_port=[1000.0, 1150.0, 1180.0, 1400.0],
        torque_stbd=0.4,
    )
    noisy = run_data.SpeedGroup(
        speed_index=1, froude_number=0.24, runs=DataSet[run_data.RunRecord](runs)
    )

    point = SppExtractor(config, linear_calibration).solve(noisy)

    # drag = a n + b fitted to the four runs, solved for drag = 1.5
    assert point.shaft_speed_port == pytest.approx(1224.5021, abs=1e-3)
    assert point.torque_stbd == pytest.approx(0.4)

    offset = analysis_config.AnalysisConfig(
        speed_overrides={}, spp_method=analysis_config.SppMethod.ZERO_DRAG_OFFSET
    )
    point = SppExtractor(offset, linear_calibration).solve(noisy)
    shaft_speed = np.polyval(
        np.polyfit(thrust, [1000.0, 1150.0, 1180.0, 1400.0], 1), point.thrust_at_spp
    )
    assert point.shaft_speed_port == pytest.approx(shaft_speed)
