import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.hull_model as hull_model
import selfprop.run_data as run_data
from selfprop.analysis_error import (
    MissingExternalDataset,
    OutOfRangeRun,
    OutOfRangeRunWarning,
)
from selfprop.resistance_model import ResistanceModel
from selfprop.utils import empty_frame

logger = logging.getLogger(__name__)


@dataclass
class RunAverager:
    """Reduces the calibrated time series of each run to one RunRecord.

    Attributes:
    ----------
    config (AnalysisConfig)
        Test configuration and physical constants.
    calibration (KielProbeCalibration)
        Kiel probe voltage to mass flow rate conversion.
    shaft_speeds (dict[int, float])
        Commanded shaft speed of each run, in RPM.
    resistance_model (ResistanceModel | None)
        Bare hull resistance, only needed by the blockage correction.
    """

    config: analysis_config.AnalysisConfig
    calibration: flow_model.KielProbeCalibration
    shaft_speeds: dict[int, float] = field(default_factory=dict)
    resistance_model: ResistanceModel | None = None

    @typechecked
    def solve(self, run: int, channels: pd.DataFrame) -> run_data.RunRecord:
        """Averages one run.

        Args:
            run (int): run number
            channels (pd.DataFrame): calibrated channels, see
                `run_data.CHANNELS` for the columns and their units

        Raises:
            OutOfRangeRun: the run belongs to no speed bucket

        Returns:
            RunRecord: the averaged run
        """
        bucket = self.config.bucket_for_run(run)
        if bucket is None:
            raise OutOfRangeRun(run)

        missing = [c for c in run_data.CHANNELS if c not in channels.columns]
        if missing:
            raise ValueError(f"Run {run} lacks channels: {', '.join(missing)}")

        stop = len(channels) - self.config.samples_cut_from_end
        samples = channels.iloc[self.config.first_sample : stop]
        if len(samples) < 2:
            raise ValueError(f"Run {run} has fewer than 2 samples left to average.")

        constants = self.config.constants
        model = self.config.model
        waterjet = self.config.waterjet
        scale_ratio = model.scale_ratio
        mean = samples.mean()

        sample_count = len(samples)
        record_time = float(samples["time"].iloc[-1] - samples["time"].iloc[0])
        sampling_frequency = self.config.tank.sampling_frequency
        if record_time > 0:
            sampling_frequency = float(np.round((sample_count - 1) / record_time))

        speed = float(mean["speed"])
        froude_number = round(
            hull_model.froude_number(speed, model.waterline_length, constants.gravity),
            2,
        )

        drag = float(mean["drag"]) / 1000 * constants.gravity
        thrust_port = abs(float(mean["thrust_port"]) / 1000) * constants.gravity
        thrust_stbd = abs(float(mean["thrust_stbd"]) / 1000) * constants.gravity

        model_cf_raw = hull_model.friction_coefficient(
            hull_model.reynolds_number(
                speed, model.waterline_length, constants.fresh_water_viscosity
            )
        )
        corrected_speed = speed
        if self.config.blockage_correction:
            corrected_speed = self._blockage_corrected_speed(
                froude_number, speed, model_cf_raw
            )

        full_scale_speed = speed * np.sqrt(scale_ratio)
        reynolds_number = hull_model.reynolds_number(
            corrected_speed, model.waterline_length, constants.fresh_water_viscosity
        )
        full_scale_reynolds_number = hull_model.reynolds_number(
            corrected_speed * np.sqrt(scale_ratio),
            model.full_scale_waterline_length,
            constants.salt_water_viscosity,
        )
        model_cf = hull_model.friction_coefficient(reynolds_number)
        full_scale_cf = hull_model.friction_coefficient(full_scale_reynolds_number)
        towing_force_coefficient = hull_model.towing_force_coefficient(
            model_cf, full_scale_cf, model.form_factor, self.config.ca
        )
        towing_force = hull_model.towing_force(
            constants.fresh_water_density,
            corrected_speed,
            model.wetted_surface_area,
            towing_force_coefficient,
        )

        boundary_layer_flow_rate = flow_model.boundary_layer_flow_rate(
            speed,
            waterjet.width_factor,
            waterjet.model_pump_diameter(scale_ratio),
            bucket.boundary_layer_thickness,
            bucket.boundary_layer_exponent,
        )

        jets = {}
        for side in flow_model.Side:
            voltage = float(mean[f"kiel_probe_{side.value}"])
            mass_flow_rate = self.calibration.mass_flow_rate(voltage, side)
            if mass_flow_rate < 0:
                warnings.warn(
                    f"Run {run}: negative {side.value} mass flow rate, its value will be saturated to 0"
                )
                mass_flow_rate = 0.0
            flow_rate = mass_flow_rate / constants.fresh_water_density
            jet_velocity = flow_rate / waterjet.model_nozzle_area(scale_ratio)
            wake_fraction = flow_model.wake_fraction(
                flow_rate, boundary_layer_flow_rate, bucket.boundary_layer_exponent
            )
            inlet_velocity = speed * (1 - wake_fraction)
            jets[side] = dict(
                mass_flow_rate=mass_flow_rate,
                flow_rate=flow_rate,
                jet_velocity=jet_velocity,
                wake_fraction=wake_fraction,
                inlet_velocity=inlet_velocity,
                gross_thrust=flow_model.gross_thrust(
                    mass_flow_rate, jet_velocity, inlet_velocity
                ),
                jet_thrust=flow_model.jet_thrust(mass_flow_rate, jet_velocity),
            )
        port = jets[flow_model.Side.PORT]
        stbd = jets[flow_model.Side.STARBOARD]

        return run_data.RunRecord(
            run=run,
            sample_count=sample_count,
            sampling_frequency=np.float64(sampling_frequency),
            record_time=np.float64(record_time),
            froude_number=np.float64(froude_number),
            speed=np.float64(speed),
            corrected_speed=np.float64(corrected_speed),
            fwd_lvdt=np.float64(mean["fwd_lvdt"]),
            aft_lvdt=np.float64(mean["aft_lvdt"]),
            drag=np.float64(drag),
            shaft_speed_port=np.float64(mean["shaft_speed_port"]),
            shaft_speed_stbd=np.float64(mean["shaft_speed_stbd"]),
            commanded_shaft_speed=np.float64(self.shaft_speeds.get(run, np.nan)),
            thrust_port=np.float64(thrust_port),
            thrust_stbd=np.float64(thrust_stbd),
            torque_port=np.float64(mean["torque_port"]),
            torque_stbd=np.float64(mean["torque_stbd"]),
            kiel_probe_port=np.float64(mean["kiel_probe_port"]),
            kiel_probe_stbd=np.float64(mean["kiel_probe_stbd"]),
            full_scale_speed=np.float64(full_scale_speed),
            full_scale_speed_knots=np.float64(full_scale_speed / analysis_config.KNOT),
            reynolds_number=np.float64(reynolds_number),
            full_scale_reynolds_number=np.float64(full_scale_reynolds_number),
            friction_coefficient=np.float64(model_cf),
            full_scale_friction_coefficient=np.float64(full_scale_cf),
            towing_force=np.float64(towing_force),
            towing_force_coefficient=np.float64(towing_force_coefficient),
            mass_flow_rate_port=np.float64(port["mass_flow_rate"]),
            mass_flow_rate_stbd=np.float64(stbd["mass_flow_rate"]),
            flow_rate_port=np.float64(port["flow_rate"]),
            flow_rate_stbd=np.float64(stbd["flow_rate"]),
            jet_velocity_port=np.float64(port["jet_velocity"]),
            jet_velocity_stbd=np.float64(stbd["jet_velocity"]),
            boundary_layer_exponent=np.float64(bucket.boundary_layer_exponent),
            boundary_layer_thickness=np.float64(bucket.boundary_layer_thickness),
            boundary_layer_flow_rate=np.float64(boundary_layer_flow_rate),
            wake_fraction_port=np.float64(port["wake_fraction"]),
            wake_fraction_stbd=np.float64(stbd["wake_fraction"]),
            wake_factor_port=np.float64(1 - port["wake_fraction"]),
            wake_factor_stbd=np.float64(1 - stbd["wake_fraction"]),
            inlet_velocity_port=np.float64(port["inlet_velocity"]),
            inlet_velocity_stbd=np.float64(stbd["inlet_velocity"]),
            gross_thrust_port=np.float64(port["gross_thrust"]),
            gross_thrust_stbd=np.float64(stbd["gross_thrust"]),
            gross_thrust_total=np.float64(port["gross_thrust"] + stbd["gross_thrust"]),
            jet_thrust_port=np.float64(port["jet_thrust"]),
            jet_thrust_stbd=np.float64(stbd["jet_thrust"]),
            jet_thrust_total=np.float64(port["jet_thrust"] + stbd["jet_thrust"]),
        )

    def solve_all(
        self, channels: Mapping[int, pd.DataFrame]
    ) -> run_data.RunRecordDataSet:
        """Averages every run, in run number order. Runs outside the speed
        buckets are reported and left out."""
        records = []
        for run in sorted(channels):
            try:
                records.append(self.solve(int(run), channels[run]))
            except OutOfRangeRun as err:
                logger.warning(err.message)
                warnings.warn(err.message, OutOfRangeRunWarning)

        logger.info("averaged %d of %d runs", len(records), len(channels))
        if not records:
            return DataSet[run_data.RunRecord](empty_frame(run_data.RunRecord))
        return DataSet[run_data.RunRecord](records)

    def _blockage_corrected_speed(
        self, froude_number: float, speed: float, model_cf: float
    ) -> float:
        if self.resistance_model is None:
            raise MissingExternalDataset(
                "bare hull resistance", "blockage correction of the model speed"
            )
        total_resistance = self.resistance_model.solve(
            froude_number, speed
        ).corrected_resistance
        return hull_model.blockage_corrected_speed(
            speed,
            float(total_resistance),
            model_cf,
            self.config.constants.fresh_water_density,
            self.config.constants.gravity,
            self.config.model,
            self.config.tank,
        )
