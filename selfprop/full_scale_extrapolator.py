import logging
import warnings
from dataclasses import dataclass

import numpy as np
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.full_scale_data as full_scale_data
import selfprop.hull_model as hull_model
import selfprop.spp_data as spp_data
from selfprop.analysis_error import DegenerateFit, DegenerateFitWarning
from selfprop.flow_model import Side
from selfprop.pump_model import PumpCurveFit, PumpCurveModel
from selfprop.utils import empty_frame, eval_poly

logger = logging.getLogger(__name__)

# Model pump head (m) against mass flow rate (kg/s), ascending coefficients.
MODEL_PUMP_HEAD = (-320.9491 / 1000, 212.97 / 1000, 24.3499 / 1000)

# Rudder contribution to the full scale wake fraction, ITTC 1978.
RUDDER_WAKE_OFFSET = 0.04


@typechecked
def solve_flow_rate(a: float, b: float, c: float) -> float:
    """Positive root of a Q^2 + b Q + c = 0.

    With a = rho / A_nozzle, b = -rho (1 - w) V and c = -TG this is the
    waterjet momentum balance TG = rho Q (Q / A_nozzle - (1 - w) V).

    Raises:
        DegenerateFit: `a` is zero, the discriminant is negative or the
            root is not positive

    Returns:
        float: (-b + sqrt(b^2 - 4 a c)) / (2 a)
    """
    if a == 0:
        raise DegenerateFit("flow rate equation is not quadratic", "flow rate")

    discriminant = b**2 - 4 * a * c
    if discriminant < 0:
        raise DegenerateFit(
            f"negative discriminant {discriminant:.6g} in the flow rate equation",
            "flow rate",
        )

    root = (-b + np.sqrt(discriminant)) / (2 * a)
    if root <= 0:
        raise DegenerateFit(f"non-positive flow rate {root:.6g}", "flow rate")
    return float(root)


@dataclass(frozen=True)
class SpeedContext:
    """Everything the extrapolation of one speed depends on, computed once.

    Port and starboard values are keyed by `Side`.
    """

    speed_index: int
    froude_number: float
    model_speed: float
    model_corrected_speed: float
    full_scale_speed: float
    model_reynolds_number: float
    full_scale_reynolds_number: float
    model_coefficients: hull_model.ResistanceCoefficients
    full_scale_coefficients: hull_model.ResistanceCoefficients
    resistance: float
    thrust_deduction: float
    thrust_split_ratio: float
    model_thrust_at_zero_drag: float
    model_gross_thrust: dict
    full_scale_gross_thrust: dict
    model_shaft_speed: dict
    full_scale_shaft_speed: dict
    model_thrust_coefficient: dict
    model_torque: dict
    model_flow_rate: dict
    model_mass_flow_rate: dict
    model_wake_fraction: float
    full_scale_wake_fraction: float

    @classmethod
    def build(
        cls,
        point: spp_data.SelfPropulsionPoint,
        resistance: float,
        thrust_deduction: float,
        config: analysis_config.AnalysisConfig,
    ) -> "SpeedContext":
        speed_index = int(point.speed_index)
        constants = config.constants
        model = config.model
        waterjet = config.waterjet
        scale_ratio = model.scale_ratio
        density_ratio = constants.salt_water_density / constants.fresh_water_density

        model_speed = float(point.speed)
        corrected_speed = model_speed
        if config.blockage_correction:
            corrected_speed = hull_model.blockage_corrected_speed(
                model_speed,
                resistance,
                hull_model.friction_coefficient(
                    hull_model.reynolds_number(
                        model_speed,
                        model.waterline_length,
                        constants.fresh_water_viscosity,
                    )
                ),
                constants.fresh_water_density,
                constants.gravity,
                model,
                config.tank,
            )
        full_scale_speed = model_speed * np.sqrt(scale_ratio)

        model_reynolds_number = hull_model.reynolds_number(
            corrected_speed, model.waterline_length, constants.fresh_water_viscosity
        )
        full_scale_reynolds_number = hull_model.reynolds_number(
            corrected_speed * np.sqrt(scale_ratio),
            model.full_scale_waterline_length,
            constants.salt_water_viscosity,
        )
        model_coefficients = hull_model.model_scale_coefficients(
            resistance,
            constants.fresh_water_density,
            corrected_speed,
            model.wetted_surface_area,
            model_reynolds_number,
            model.form_factor,
        )
        full_scale_coefficients = hull_model.full_scale_coefficients(
            model_coefficients.residual, full_scale_reynolds_number, config
        )

        ratio = float(point.thrust_split_ratio)
        thrust = float(point.thrust_at_spp)
        model_gross_thrust = {Side.PORT: ratio * thrust, Side.STARBOARD: (1 - ratio) * thrust}
        full_scale_gross_thrust = {
            side: value * scale_ratio**3 * density_ratio
            for side, value in model_gross_thrust.items()
        }

        model_shaft_speed = {
            Side.PORT: float(point.shaft_speed_port),
            Side.STARBOARD: float(point.shaft_speed_stbd),
        }
        model_impeller = waterjet.model_impeller_diameter(scale_ratio)
        model_thrust_coefficient = {}
        full_scale_shaft_speed = {}
        for side in Side:
            if model_shaft_speed[side] <= 0:
                raise DegenerateFit(
                    "non-positive shaft speed at the self-propulsion point",
                    f"shaft speed {side.value}",
                    speed_index,
                )
            if model_gross_thrust[side] <= 0:
                raise DegenerateFit(
                    "non-positive gross thrust at the self-propulsion point",
                    f"gross thrust {side.value}",
                    speed_index,
                )
            model_thrust_coefficient[side] = model_gross_thrust[side] / (
                constants.fresh_water_density
                * model_impeller**4
                * (model_shaft_speed[side] / 60) ** 2
            )
            full_scale_shaft_speed[side] = 60 * np.sqrt(
                full_scale_gross_thrust[side]
                / (
                    constants.salt_water_density
                    * waterjet.impeller_diameter**4
                    * model_thrust_coefficient[side]
                )
            )

        model_flow_rate = {
            Side.PORT: float(point.flow_rate_port),
            Side.STARBOARD: float(point.flow_rate_stbd),
        }
        bucket = next(b for b in config.speed_buckets if b.number == speed_index)
        boundary_layer_flow_rate = flow_model.boundary_layer_flow_rate(
            model_speed,
            waterjet.width_factor,
            waterjet.model_pump_diameter(scale_ratio),
            bucket.boundary_layer_thickness,
            bucket.boundary_layer_exponent,
        )
        if model_flow_rate[Side.PORT] < 0:
            raise DegenerateFit(
                "negative flow rate at the self-propulsion point", "flow rate port", speed_index
            )
        model_wake_fraction = flow_model.wake_fraction(
            model_flow_rate[Side.PORT],
            boundary_layer_flow_rate,
            bucket.boundary_layer_exponent,
        )

        friction_ratio = full_scale_coefficients.friction / model_coefficients.friction
        full_scale_wake_fraction = model_wake_fraction * friction_ratio
        if config.wake_rudder_component:
            full_scale_wake_fraction += (thrust_deduction + RUDDER_WAKE_OFFSET) * (
                1 - friction_ratio
            )

        return cls(
            speed_index=speed_index,
            froude_number=float(point.froude_number),
            model_speed=model_speed,
            model_corrected_speed=float(corrected_speed),
            full_scale_speed=float(full_scale_speed),
            model_reynolds_number=float(model_reynolds_number),
            full_scale_reynolds_number=float(full_scale_reynolds_number),
            model_coefficients=model_coefficients,
            full_scale_coefficients=full_scale_coefficients,
            resistance=resistance,
            thrust_deduction=thrust_deduction,
            thrust_split_ratio=ratio,
            model_thrust_at_zero_drag=float(point.thrust_at_zero_drag),
            model_gross_thrust=model_gross_thrust,
            full_scale_gross_thrust=full_scale_gross_thrust,
            model_shaft_speed=model_shaft_speed,
            full_scale_shaft_speed=full_scale_shaft_speed,
            model_thrust_coefficient=model_thrust_coefficient,
            model_torque={
                Side.PORT: float(point.torque_port),
                Side.STARBOARD: float(point.torque_stbd),
            },
            model_flow_rate=model_flow_rate,
            model_mass_flow_rate={
                Side.PORT: float(point.mass_flow_rate_port),
                Side.STARBOARD: float(point.mass_flow_rate_stbd),
            },
            model_wake_fraction=float(model_wake_fraction),
            full_scale_wake_fraction=float(full_scale_wake_fraction),
        )


@dataclass(frozen=True)
class _ScaleState:
    """Scale specific inputs of the power and efficiency chain."""

    speed: float
    density: float
    reynolds_number: float
    coefficients: hull_model.ResistanceCoefficients
    total_resistance: float
    wake_fraction: float
    shaft_speed: dict
    thrust_coefficient: dict
    gross_thrust: dict
    flow_rate: dict
    nozzle_area: float
    pump_diameter: float
    pump_head: dict
    pump_efficiency: dict
    thrust_at_zero_drag: float


@dataclass
class FullScaleExtrapolator:
    """Scales each speed's self-propulsion point up to the ship.

    Attributes:
    ----------
    config (AnalysisConfig)
        Test configuration and physical constants.
    pump_model (PumpCurveModel)
        Benchmark pump curves, fitted at each full scale shaft speed.
    """

    config: analysis_config.AnalysisConfig
    pump_model: PumpCurveModel

    @typechecked
    def solve(
        self, context: SpeedContext
    ) -> tuple[full_scale_data.PerformanceRow, full_scale_data.PerformanceRow]:
        """Extrapolates one speed.

        Returns:
            the full scale row and its model scale counterpart
        """
        try:
            full_scale = self._row(context, self._full_scale_state(context))
            model_scale = self._row(context, self._model_scale_state(context))
        except DegenerateFit as err:
            raise DegenerateFit(err.reason, err.channel, context.speed_index) from err

        logger.debug(
            "speed %d: Vs=%.3f m/s, PE=%.1f kW, etaD=%.4f",
            context.speed_index,
            full_scale.speed,
            full_scale.effective_power / 1000,
            full_scale.propulsive_efficiency,
        )
        return full_scale, model_scale

    def _full_scale_state(self, context: SpeedContext) -> _ScaleState:
        constants = self.config.constants
        model = self.config.model
        waterjet = self.config.waterjet
        density = constants.salt_water_density
        wake_fraction = context.full_scale_wake_fraction
        speed = context.full_scale_speed

        flow_rate = {}
        pump_head = {}
        pump_efficiency = {}
        for side in Side:
            flow_rate[side] = solve_flow_rate(
                density / waterjet.nozzle_area,
                -density * (1 - wake_fraction) * speed,
                -context.full_scale_gross_thrust[side],
            )
            pump: PumpCurveFit = self.pump_model.solve(
                float(context.full_scale_shaft_speed[side])
            )
            pump_head[side] = pump.head(flow_rate[side])
            pump_efficiency[side] = pump.efficiency(flow_rate[side])

        density_ratio = density / constants.fresh_water_density
        coefficients = context.full_scale_coefficients
        return _ScaleState(
            speed=speed,
            density=density,
            reynolds_number=context.full_scale_reynolds_number,
            coefficients=coefficients,
            total_resistance=hull_model.resistance(
                coefficients.total,
                density,
                speed,
                model.full_scale_wetted_surface_area,
            ),
            wake_fraction=wake_fraction,
            shaft_speed=context.full_scale_shaft_speed,
            # equal to the model value by construction of the shaft speed
            thrust_coefficient=context.model_thrust_coefficient,
            gross_thrust=context.full_scale_gross_thrust,
            flow_rate=flow_rate,
            nozzle_area=waterjet.nozzle_area,
            pump_diameter=waterjet.pump_diameter,
            pump_head=pump_head,
            pump_efficiency=pump_efficiency,
            thrust_at_zero_drag=context.model_thrust_at_zero_drag
            * model.scale_ratio**3
            * density_ratio,
        )

    def _model_scale_state(self, context: SpeedContext) -> _ScaleState:
        constants = self.config.constants
        scale_ratio = self.config.model.scale_ratio
        waterjet = self.config.waterjet
        density = constants.fresh_water_density
        pump_diameter = waterjet.model_pump_diameter(scale_ratio)

        pump_head = {}
        pump_efficiency = {}
        for side in Side:
            head = float(eval_poly(MODEL_PUMP_HEAD, context.model_mass_flow_rate[side]))
            revs = context.model_shaft_speed[side] / 60
            torque = context.model_torque[side]
            if torque <= 0:
                raise DegenerateFit(
                    "non-positive torque at the self-propulsion point",
                    f"torque {side.value}",
                )
            flow_coefficient = context.model_flow_rate[side] / (revs * pump_diameter**3)
            head_coefficient = constants.gravity * head / (revs**2 * pump_diameter**2)
            torque_coefficient = torque / (density * revs**2 * pump_diameter**5)
            pump_head[side] = head
            pump_efficiency[side] = (flow_coefficient * head_coefficient) / (
                2 * np.pi * torque_coefficient
            )

        return _ScaleState(
            speed=context.model_speed,
            density=density,
            reynolds_number=context.model_reynolds_number,
            coefficients=context.model_coefficients,
            total_resistance=context.resistance,
            wake_fraction=context.model_wake_fraction,
            shaft_speed=context.model_shaft_speed,
            thrust_coefficient=context.model_thrust_coefficient,
            gross_thrust=context.model_gross_thrust,
            flow_rate=context.model_flow_rate,
            nozzle_area=waterjet.model_nozzle_area(scale_ratio),
            pump_diameter=pump_diameter,
            pump_head=pump_head,
            pump_efficiency=pump_efficiency,
            thrust_at_zero_drag=context.model_thrust_at_zero_drag,
        )

    def _row(
        self, context: SpeedContext, state: _ScaleState
    ) -> full_scale_data.PerformanceRow:
        gravity = self.config.constants.gravity
        waterjet = self.config.waterjet
        speed = state.speed
        density = state.density
        wake_factor = 1 - state.wake_fraction
        inlet_velocity = wake_factor * speed
        effective_power = state.total_resistance * speed

        sides: dict[str, dict] = {}
        for side in Side:
            flow_rate = state.flow_rate[side]
            mass_flow_rate = flow_rate * density
            jet_velocity = flow_rate / state.nozzle_area
            revs = state.shaft_speed[side] / 60
            head = state.pump_head[side]
            pump_efficiency = state.pump_efficiency[side]
            if pump_efficiency <= 0:
                raise DegenerateFit(
                    f"non-positive pump efficiency {pump_efficiency:.4g}",
                    f"pump efficiency {side.value}",
                )

            inlet_flux = 0.5 * density * flow_rate * inlet_velocity**2
            outlet_flux = 0.5 * density * flow_rate * jet_velocity**2
            ideal_efficiency = 2 / (1 + jet_velocity / inlet_velocity)
            if self.config.pump_power_method is analysis_config.PumpPowerMethod.ITTC:
                pump_power = density * gravity * flow_rate * head
            else:
                pump_power = (
                    outlet_flux / waterjet.nozzle_efficiency
                    - ideal_efficiency * inlet_flux
                )
            delivered_power = pump_power / pump_efficiency
            jet_system_power = outlet_flux - inlet_flux
            thrust_power = state.gross_thrust[side] * speed
            jet_velocity_ratio = jet_velocity / speed

            sides[side.value] = dict(
                shaft_speed=state.shaft_speed[side],
                thrust_coefficient=state.thrust_coefficient[side],
                gross_thrust=state.gross_thrust[side],
                flow_rate=flow_rate,
                mass_flow_rate=mass_flow_rate,
                jet_velocity=jet_velocity,
                flow_coefficient=flow_rate / (revs * state.pump_diameter**3),
                pump_head=head,
                head_coefficient=gravity * head / (revs * state.pump_diameter) ** 2,
                pump_efficiency=pump_efficiency,
                energy_flux_inlet=inlet_flux,
                energy_flux_outlet=outlet_flux,
                ideal_efficiency=ideal_efficiency,
                pump_effective_power=pump_power,
                delivered_power=delivered_power,
                brake_power=delivered_power
                / waterjet.shaft_efficiency
                / waterjet.gearbox_efficiency,
                jet_system_power=jet_system_power,
                thrust_effective_power=thrust_power,
                jet_system_efficiency=thrust_power / jet_system_power,
                jet_velocity_ratio=jet_velocity_ratio,
                # Bose (2008), eqn 10-28
                bose_10_28=(
                    mass_flow_rate
                    * (jet_velocity - inlet_velocity)
                    * speed
                    * pump_efficiency
                    * waterjet.installation_efficiency
                )
                / (
                    0.5
                    * mass_flow_rate
                    * (
                        jet_velocity**2 / waterjet.nozzle_efficiency
                        - waterjet.intake_efficiency * inlet_velocity**2
                    )
                ),
                # Bose (2008), eqn 10-29, ideal nozzle and installation
                bose_10_29=2
                * pump_efficiency
                * (jet_velocity_ratio - 1)
                / (jet_velocity_ratio**2 - waterjet.intake_efficiency),
            )

        port = sides[Side.PORT.value]
        stbd = sides[Side.STARBOARD.value]

        def total(name):
            return port[name] + stbd[name]

        per_side = {}
        for name in (
            "shaft_speed",
            "thrust_coefficient",
            "gross_thrust",
            "flow_rate",
            "mass_flow_rate",
            "jet_velocity",
            "flow_coefficient",
            "pump_head",
            "head_coefficient",
            "pump_efficiency",
            "energy_flux_inlet",
            "energy_flux_outlet",
            "ideal_efficiency",
            "pump_effective_power",
            "delivered_power",
            "brake_power",
            "jet_system_power",
            "thrust_effective_power",
            "jet_system_efficiency",
            "jet_velocity_ratio",
        ):
            for side_name, values in sides.items():
                per_side[f"{name}_{side_name}"] = np.float64(values[name])

        coefficients = state.coefficients
        jet_system_delivered = sum(
            values["jet_system_power"] / values["jet_system_efficiency"]
            for values in sides.values()
        )

        return full_scale_data.PerformanceRow(
            speed_index=context.speed_index,
            froude_number=np.float64(context.froude_number),
            speed=np.float64(speed),
            speed_knots=np.float64(speed / analysis_config.KNOT),
            reynolds_number=np.float64(state.reynolds_number),
            friction_coefficient=np.float64(coefficients.friction),
            roughness_allowance=np.float64(coefficients.roughness),
            correlation_coefficient=np.float64(coefficients.correlation),
            air_resistance_coefficient=np.float64(coefficients.air),
            residual_resistance_coefficient=np.float64(coefficients.residual),
            total_resistance_coefficient=np.float64(coefficients.total),
            total_resistance=np.float64(state.total_resistance),
            effective_power=np.float64(effective_power),
            thrust_deduction=np.float64(context.thrust_deduction),
            wake_fraction=np.float64(state.wake_fraction),
            wake_factor=np.float64(wake_factor),
            hull_efficiency=np.float64((1 - context.thrust_deduction) / wake_factor),
            optimum_efficiency=np.float64(1 - (port["jet_velocity_ratio"] - 1) ** 2),
            inlet_velocity=np.float64(inlet_velocity),
            energy_flux_freestream=np.float64(0.5 * density * speed**2),
            inlet_velocity_ratio=np.float64(inlet_velocity / speed),
            propulsive_efficiency=np.float64(
                effective_power / total("delivered_power")
            ),
            propulsive_efficiency_thrust=np.float64(
                total("gross_thrust") * speed / total("pump_effective_power")
            ),
            propulsive_efficiency_jet_system=np.float64(
                effective_power / jet_system_delivered
            ),
            propulsive_efficiency_zero_drag=np.float64(
                state.thrust_at_zero_drag * speed / total("delivered_power")
            ),
            propulsive_efficiency_bose_10_28=np.float64(total("bose_10_28") / 2),
            propulsive_efficiency_bose_10_29=np.float64(total("bose_10_29") / 2),
            **per_side,
        )

    def solve_all(
        self,
        spp: spp_data.SelfPropulsionPointDataSet,
        deductions: spp_data.ThrustDeductionDataSet,
        resistances: dict[int, float],
    ) -> tuple[
        full_scale_data.FullScaleDataSet,
        full_scale_data.ModelScaleDataSet,
        dict[int, str],
    ]:
        """Extrapolates every speed that has a thrust deduction.

        The estimator named by `config.thrust_deduction_formula` feeds the
        wake scaling and the hull efficiency.

        Returns:
            the full scale rows, the model scale rows, and the reason each
            dropped speed was dropped
        """
        estimator = f"t{self.config.thrust_deduction_formula}"
        deduction = deductions.to_dataframe().set_index("speed_index")[estimator]

        full_scale_rows = []
        model_scale_rows = []
        skipped = {}
        for record in spp.to_dataframe().to_dict("records"):
            point = spp_data.SelfPropulsionPoint(**record)
            speed_index = int(point.speed_index)
            if speed_index not in deduction.index:
                skipped[speed_index] = f"speed {speed_index}: no thrust deduction"
                continue
            try:
                if np.isnan(deduction[speed_index]):
                    raise DegenerateFit(
                        f"thrust deduction {estimator} is not available",
                        "thrust deduction",
                        speed_index,
                    )
                context = SpeedContext.build(
                    point,
                    float(resistances[speed_index]),
                    float(deduction[speed_index]),
                    self.config,
                )
                full_scale, model_scale = self.solve(context)
            except DegenerateFit as err:
                logger.warning(err.message)
                warnings.warn(err.message, DegenerateFitWarning)
                skipped[speed_index] = err.message
                continue
            full_scale_rows.append(full_scale)
            model_scale_rows.append(model_scale)

        logger.info(
            "extrapolated %d of %d speeds to full scale",
            len(full_scale_rows),
            len(spp),
        )
        if not full_scale_rows:
            frame = empty_frame(full_scale_data.PerformanceRow)
            return (
                DataSet[full_scale_data.PerformanceRow](frame),
                DataSet[full_scale_data.PerformanceRow](frame.copy()),
                skipped,
            )
        return (
            DataSet[full_scale_data.PerformanceRow](full_scale_rows),
            DataSet[full_scale_data.PerformanceRow](model_scale_rows),
            skipped,
        )
