from dataclasses import dataclass

import numpy as np

from strictly_typed_pandas.dataset import DataSet


@dataclass
class PerformanceRow:
    """Propulsion performance of one speed at one scale.

    The same columns serve the full scale prediction and its model scale
    audit trail. At model scale the roughness, correlation and air
    resistance coefficients are zero. Powers in W, speeds in m/s, shaft
    speeds in RPM, flow rates in m^3/s and heads in m.
    """

    speed_index: int
    froude_number: np.float64
    speed: np.float64
    speed_knots: np.float64
    reynolds_number: np.float64
    friction_coefficient: np.float64
    roughness_allowance: np.float64
    correlation_coefficient: np.float64
    air_resistance_coefficient: np.float64
    residual_resistance_coefficient: np.float64
    total_resistance_coefficient: np.float64
    total_resistance: np.float64
    effective_power: np.float64
    thrust_deduction: np.float64
    wake_fraction: np.float64
    wake_factor: np.float64
    hull_efficiency: np.float64
    optimum_efficiency: np.float64
    shaft_speed_port: np.float64
    shaft_speed_stbd: np.float64
    thrust_coefficient_port: np.float64
    thrust_coefficient_stbd: np.float64
    gross_thrust_port: np.float64
    gross_thrust_stbd: np.float64
    flow_rate_port: np.float64
    flow_rate_stbd: np.float64
    mass_flow_rate_port: np.float64
    mass_flow_rate_stbd: np.float64
    jet_velocity_port: np.float64
    jet_velocity_stbd: np.float64
    inlet_velocity: np.float64
    flow_coefficient_port: np.float64
    flow_coefficient_stbd: np.float64
    pump_head_port: np.float64
    pump_head_stbd: np.float64
    head_coefficient_port: np.float64
    head_coefficient_stbd: np.float64
    pump_efficiency_port: np.float64
    pump_efficiency_stbd: np.float64
    energy_flux_inlet_port: np.float64
    energy_flux_inlet_stbd: np.float64
    energy_flux_outlet_port: np.float64
    energy_flux_outlet_stbd: np.float64
    energy_flux_freestream: np.float64
    ideal_efficiency_port: np.float64
    ideal_efficiency_stbd: np.float64
    pump_effective_power_port: np.float64
    pump_effective_power_stbd: np.float64
    delivered_power_port: np.float64
    delivered_power_stbd: np.float64
    brake_power_port: np.float64
    brake_power_stbd: np.float64
    jet_system_power_port: np.float64
    jet_system_power_stbd: np.float64
    thrust_effective_power_port: np.float64
    thrust_effective_power_stbd: np.float64
    jet_system_efficiency_port: np.float64
    jet_system_efficiency_stbd: np.float64
    inlet_velocity_ratio: np.float64
    jet_velocity_ratio_port: np.float64
    jet_velocity_ratio_stbd: np.float64
    propulsive_efficiency: np.float64
    propulsive_efficiency_thrust: np.float64
    propulsive_efficiency_jet_system: np.float64
    propulsive_efficiency_zero_drag: np.float64
    propulsive_efficiency_bose_10_28: np.float64
    propulsive_efficiency_bose_10_29: np.float64


# Annotation only.
FullScaleDataSet = DataSet[PerformanceRow]
ModelScaleDataSet = DataSet[PerformanceRow]
