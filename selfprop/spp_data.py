from dataclasses import dataclass

import numpy as np

from strictly_typed_pandas.dataset import DataSet


@dataclass
class SelfPropulsionPoint:
    """Model quantities at the self-propulsion point of one speed.

    The fit is `drag = fit_slope * gross_thrust + force_at_zero_thrust`.
    `raw_fit_slope` and `raw_force_at_zero_thrust` always hold the values
    of the measured fit; `fit_slope` and `force_at_zero_thrust` hold the
    corrected ones when `correction_applied` is set.
    """

    speed_index: int
    froude_number: np.float64
    speed: np.float64
    towing_force: np.float64
    raw_fit_slope: np.float64
    raw_force_at_zero_thrust: np.float64
    fit_slope: np.float64
    force_at_zero_thrust: np.float64
    fit_r_squared: np.float64
    thrust_at_zero_drag: np.float64
    thrust_at_spp_offset: np.float64
    thrust_at_spp_intersection: np.float64
    thrust_at_spp: np.float64
    thrust_split_ratio: np.float64
    thrust_port: np.float64
    thrust_stbd: np.float64
    thrust_mean: np.float64
    shaft_speed_port: np.float64
    shaft_speed_stbd: np.float64
    shaft_speed_mean: np.float64
    torque_port: np.float64
    torque_stbd: np.float64
    torque_mean: np.float64
    kiel_probe_port: np.float64
    kiel_probe_stbd: np.float64
    kiel_probe_mean: np.float64
    mass_flow_rate_port: np.float64
    mass_flow_rate_stbd: np.float64
    flow_rate_port: np.float64
    flow_rate_stbd: np.float64
    correction_applied: bool


# Annotation only.
SelfPropulsionPointDataSet = DataSet[SelfPropulsionPoint]


@dataclass
class ThrustDeduction:
    """Thrust deduction fraction of one speed by each estimator.

    Attributes:
    ----------
    t1 .. t4
        Resistance and force based estimators.
    t5
        Slope of the adjusted fit plus one, NaN when the adjusted
        fitting did not run.
    """

    speed_index: int
    froude_number: np.float64
    thrust_at_spp: np.float64
    towing_force: np.float64
    force_at_zero_thrust: np.float64
    resistance: np.float64
    t1: np.float64
    t2: np.float64
    t3: np.float64
    t4: np.float64
    t5: np.float64


# Annotation only.
ThrustDeductionDataSet = DataSet[ThrustDeduction]
