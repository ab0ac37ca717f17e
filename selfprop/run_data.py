from dataclasses import dataclass

import numpy as np

from strictly_typed_pandas.dataset import DataSet


# Calibrated DAQ channels of one run, in the order of the exported tables.
CHANNELS = (
    "time",  # s
    "speed",  # m/s
    "fwd_lvdt",  # mm
    "aft_lvdt",  # mm
    "drag",  # g
    "shaft_speed_port",  # RPM
    "shaft_speed_stbd",  # RPM
    "thrust_port",  # g
    "thrust_stbd",  # g
    "torque_port",  # Nm
    "torque_stbd",  # Nm
    "kiel_probe_port",  # V
    "kiel_probe_stbd",  # V
)


@dataclass
class RunRecord:
    run: int
    sample_count: int
    sampling_frequency: np.float64
    record_time: np.float64
    froude_number: np.float64
    speed: np.float64
    corrected_speed: np.float64
    fwd_lvdt: np.float64
    aft_lvdt: np.float64
    drag: np.float64
    shaft_speed_port: np.float64
    shaft_speed_stbd: np.float64
    commanded_shaft_speed: np.float64
    thrust_port: np.float64
    thrust_stbd: np.float64
    torque_port: np.float64
    torque_stbd: np.float64
    kiel_probe_port: np.float64
    kiel_probe_stbd: np.float64
    full_scale_speed: np.float64
    full_scale_speed_knots: np.float64
    reynolds_number: np.float64
    full_scale_reynolds_number: np.float64
    friction_coefficient: np.float64
    full_scale_friction_coefficient: np.float64
    towing_force: np.float64
    towing_force_coefficient: np.float64
    mass_flow_rate_port: np.float64
    mass_flow_rate_stbd: np.float64
    flow_rate_port: np.float64
    flow_rate_stbd: np.float64
    jet_velocity_port: np.float64
    jet_velocity_stbd: np.float64
    boundary_layer_exponent: np.float64
    boundary_layer_thickness: np.float64
    boundary_layer_flow_rate: np.float64
    wake_fraction_port: np.float64
    wake_fraction_stbd: np.float64
    wake_factor_port: np.float64
    wake_factor_stbd: np.float64
    inlet_velocity_port: np.float64
    inlet_velocity_stbd: np.float64
    gross_thrust_port: np.float64
    gross_thrust_stbd: np.float64
    gross_thrust_total: np.float64
    jet_thrust_port: np.float64
    jet_thrust_stbd: np.float64
    jet_thrust_total: np.float64


# Annotation only. Tables are built with DataSet[RunRecord](rows) since the
# subscripted schema is consumed by the next DataSet constructed.
RunRecordDataSet = DataSet[RunRecord]


@dataclass(frozen=True, eq=False)
class SpeedGroup:
    """Repeat runs sharing one rounded Froude number.

    Attributes:
    ----------
    speed_index (int)
        1-indexed number of the canonical speed, in test order.
    froude_number (float)
        Rounded Froude number shared by every run of the group.
    runs (RunRecordDataSet)
        Runs of the group, ordered by run number.
    """

    speed_index: int
    froude_number: float
    runs: RunRecordDataSet

    def __len__(self) -> int:
        return len(self.runs)
