import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.run_data as run_data
import selfprop.spp_data as spp_data
from selfprop.analysis_error import DegenerateFit, DegenerateFitWarning
from selfprop.utils import empty_frame, fit_and_evaluate, fit_line, intersect_horizontal

logger = logging.getLogger(__name__)

# Channels evaluated at the self-propulsion thrust, per waterjet.
SPP_CHANNELS = ("shaft_speed", "torque", "kiel_probe")


@dataclass
class SppExtractor:
    """Locates the self-propulsion point of each speed group.

    The group's (gross thrust, drag) points are fitted with a line and the
    self-propulsion thrust is read off that line. With the intersection
    method every other channel q gets its own drag = a q + b fit, crossed
    with the towing force line. With the offset method the channels are
    fitted against gross thrust and evaluated at the self-propulsion thrust.

    Attributes:
    ----------
    config (AnalysisConfig)
        Test configuration, holds the per-speed row overrides.
    calibration (KielProbeCalibration)
        The same kiel probe calibration used to average the runs.
    """

    config: analysis_config.AnalysisConfig
    calibration: flow_model.KielProbeCalibration

    def fit_rows(self, group: run_data.SpeedGroup) -> pd.DataFrame:
        """Runs of the group used for its fits."""
        frame = group.runs.to_dataframe()
        override = self.config.speed_overrides.get(group.speed_index)
        if override is None:
            return frame
        try:
            return frame.iloc[override.select(len(frame))]
        except ValueError as err:
            raise DegenerateFit(str(err), "row override") from err

    def thrust_split_ratio(self, group: run_data.SpeedGroup) -> float:
        """Port share of the total gross thrust."""
        frame = group.runs.to_dataframe()
        override = self.config.speed_overrides.get(group.speed_index)
        if override is not None and override.ratio_row is not None:
            if not 1 <= override.ratio_row <= len(frame):
                raise DegenerateFit(
                    f"ratio row {override.ratio_row} outside a group of {len(frame)} runs",
                    "row override",
                )
            row = frame.iloc[override.ratio_row - 1]
            return float(row.gross_thrust_port / row.gross_thrust_total)

        rows = self.fit_rows(group)
        return float((rows.gross_thrust_port / rows.gross_thrust_total).mean())

    def channel_at_spp(
        self, rows: pd.DataFrame, column: str, thrust_at_spp: float, towing_force: float
    ) -> float:
        values = rows[column].to_numpy()
        if np.ptp(values) == 0:
            # unchanged over the runs
            return float(values[0])
        if self.config.spp_method is analysis_config.SppMethod.INTERSECTION:
            return intersect_horizontal(values, rows.drag.to_numpy(), towing_force, column)
        return fit_and_evaluate(
            rows.gross_thrust_total.to_numpy(), values, thrust_at_spp, column
        )

    @typechecked
    def solve(self, group: run_data.SpeedGroup) -> spp_data.SelfPropulsionPoint:
        try:
            return self._solve(group)
        except DegenerateFit as err:
            raise DegenerateFit(err.reason, err.channel, group.speed_index) from err

    def _solve(self, group: run_data.SpeedGroup) -> spp_data.SelfPropulsionPoint:
        rows = self.fit_rows(group)
        gross_thrust = rows.gross_thrust_total.to_numpy()

        towing_force = float(rows.towing_force.mean())
        fit = fit_line(gross_thrust, rows.drag.to_numpy(), "gross thrust")

        thrust_at_zero_drag = fit.solve(0.0, "gross thrust")
        thrust_at_spp_offset = thrust_at_zero_drag - towing_force
        thrust_at_spp_intersection = fit.solve(towing_force, "gross thrust")
        if self.config.spp_method is analysis_config.SppMethod.INTERSECTION:
            thrust_at_spp = thrust_at_spp_intersection
        else:
            thrust_at_spp = thrust_at_spp_offset

        ratio = self.thrust_split_ratio(group)

        at_spp = {}
        for channel in SPP_CHANNELS:
            for side in flow_model.Side:
                column = f"{channel}_{side.value}"
                at_spp[column] = self.channel_at_spp(
                    rows, column, thrust_at_spp, towing_force
                )

        density = self.config.constants.fresh_water_density
        mass_flow_rate = {
            side: self.calibration.mass_flow_rate(
                at_spp[f"kiel_probe_{side.value}"], side
            )
            for side in flow_model.Side
        }
        port = flow_model.Side.PORT
        stbd = flow_model.Side.STARBOARD

        logger.debug(
            "speed %d: T@SPP=%.4f N, FD=%.4f N, slope=%.4f, R^2=%.4f",
            group.speed_index,
            thrust_at_spp,
            towing_force,
            fit.slope,
            fit.r_squared,
        )

        return spp_data.SelfPropulsionPoint(
            speed_index=group.speed_index,
            froude_number=np.float64(group.froude_number),
            speed=np.float64(rows.speed.mean()),
            towing_force=np.float64(towing_force),
            raw_fit_slope=np.float64(fit.slope),
            raw_force_at_zero_thrust=np.float64(fit.intercept),
            fit_slope=np.float64(fit.slope),
            force_at_zero_thrust=np.float64(fit.intercept),
            fit_r_squared=np.float64(fit.r_squared),
            thrust_at_zero_drag=np.float64(thrust_at_zero_drag),
            thrust_at_spp_offset=np.float64(thrust_at_spp_offset),
            thrust_at_spp_intersection=np.float64(thrust_at_spp_intersection),
            thrust_at_spp=np.float64(thrust_at_spp),
            thrust_split_ratio=np.float64(ratio),
            thrust_port=np.float64(ratio * thrust_at_spp),
            thrust_stbd=np.float64((1 - ratio) * thrust_at_spp),
            thrust_mean=np.float64(thrust_at_spp / 2),
            shaft_speed_port=np.float64(at_spp["shaft_speed_port"]),
            shaft_speed_stbd=np.float64(at_spp["shaft_speed_stbd"]),
            shaft_speed_mean=np.float64(
                (at_spp["shaft_speed_port"] + at_spp["shaft_speed_stbd"]) / 2
            ),
            torque_port=np.float64(at_spp["torque_port"]),
            torque_stbd=np.float64(at_spp["torque_stbd"]),
            torque_mean=np.float64((at_spp["torque_port"] + at_spp["torque_stbd"]) / 2),
            kiel_probe_port=np.float64(at_spp["kiel_probe_port"]),
            kiel_probe_stbd=np.float64(at_spp["kiel_probe_stbd"]),
            kiel_probe_mean=np.float64(
                (at_spp["kiel_probe_port"] + at_spp["kiel_probe_stbd"]) / 2
            ),
            mass_flow_rate_port=np.float64(mass_flow_rate[port]),
            mass_flow_rate_stbd=np.float64(mass_flow_rate[stbd]),
            flow_rate_port=np.float64(mass_flow_rate[port] / density),
            flow_rate_stbd=np.float64(mass_flow_rate[stbd] / density),
            correction_applied=False,
        )

    def solve_all(
        self, groups: list[run_data.SpeedGroup]
    ) -> tuple[spp_data.SelfPropulsionPointDataSet, dict[int, str]]:
        """Self-propulsion points of every group that can be fitted.

        Returns:
            the points, and the reason each dropped speed was dropped
        """
        points = []
        skipped = {}
        for group in groups:
            try:
                points.append(self.solve(group))
            except DegenerateFit as err:
                logger.warning(err.message)
                warnings.warn(err.message, DegenerateFitWarning)
                skipped[group.speed_index] = err.message

        if not points:
            frame = empty_frame(spp_data.SelfPropulsionPoint)
            return DataSet[spp_data.SelfPropulsionPoint](frame), skipped
        return DataSet[spp_data.SelfPropulsionPoint](points), skipped
