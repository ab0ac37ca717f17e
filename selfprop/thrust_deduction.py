import logging
import warnings

import numpy as np
import pandas as pd
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.spp_data as spp_data
from selfprop.analysis_error import (
    DegenerateFit,
    DegenerateFitWarning,
    IncompleteSpeedCoverage,
    IncompleteSpeedCoverageWarning,
)
from selfprop.utils import empty_frame

logger = logging.getLogger(__name__)

ESTIMATORS = ("t1", "t2", "t3", "t4", "t5")


@typechecked
def from_resistance(thrust: float, towing_force: float, resistance: float) -> float:
    """t = (T + FD - Rc) / T"""
    return (thrust + towing_force - resistance) / thrust


@typechecked
def from_resistance_deficit(
    thrust: float, towing_force: float, resistance: float
) -> float:
    """t = 1 - (Rc - FD) / T"""
    return 1 - (resistance - towing_force) / thrust


@typechecked
def from_force_at_zero_thrust(
    thrust: float, towing_force: float, force_at_zero_thrust: float
) -> float:
    """t = (FD - F_T0) / T + 1"""
    return (towing_force - force_at_zero_thrust) / thrust + 1


@typechecked
def from_force_deficit(
    thrust: float, towing_force: float, force_at_zero_thrust: float
) -> float:
    """t = 1 - (F_T0 - FD) / T"""
    return 1 - (force_at_zero_thrust - towing_force) / thrust


@typechecked
def from_slope(slope: float) -> float:
    """t = slope + 1, slope of the drag against gross thrust fit"""
    return slope + 1


@typechecked
def solve(
    point: spp_data.SelfPropulsionPoint, resistance: float, adjusted: bool
) -> spp_data.ThrustDeduction:
    """All estimators of one speed, from one snapshot of its
    self-propulsion point and bare hull resistance.

    Args:
        point (SelfPropulsionPoint): self-propulsion point of the speed
        resistance (float): temperature corrected bare hull resistance, in N
        adjusted (bool): whether the adjusted fitting ran, enables `t5`

    Returns:
        ThrustDeduction: the five estimates
    """
    thrust = float(point.thrust_at_spp)
    towing_force = float(point.towing_force)
    force_at_zero_thrust = float(point.force_at_zero_thrust)
    if thrust == 0:
        raise DegenerateFit(
            "zero thrust at the self-propulsion point", "thrust deduction", point.speed_index
        )

    t5 = from_slope(float(point.fit_slope)) if adjusted else np.nan

    return spp_data.ThrustDeduction(
        speed_index=point.speed_index,
        froude_number=point.froude_number,
        thrust_at_spp=np.float64(thrust),
        towing_force=np.float64(towing_force),
        force_at_zero_thrust=np.float64(force_at_zero_thrust),
        resistance=np.float64(resistance),
        t1=np.float64(from_resistance(thrust, towing_force, resistance)),
        t2=np.float64(from_resistance_deficit(thrust, towing_force, resistance)),
        t3=np.float64(
            from_force_at_zero_thrust(thrust, towing_force, force_at_zero_thrust)
        ),
        t4=np.float64(from_force_deficit(thrust, towing_force, force_at_zero_thrust)),
        t5=np.float64(t5),
    )


def solve_all(
    spp: spp_data.SelfPropulsionPointDataSet, resistances: dict[int, float]
) -> tuple[spp_data.ThrustDeductionDataSet, dict[int, str]]:
    """Estimators of every speed. `t5` is only filled when the points carry
    the adjusted fitting.

    Returns:
        the estimates, and the reason each dropped speed was dropped
    """
    adjusted = bool(spp.correction_applied.any())
    rows = []
    skipped = {}
    for record in spp.to_dataframe().to_dict("records"):
        point = spp_data.SelfPropulsionPoint(**record)
        try:
            rows.append(solve(point, float(resistances[point.speed_index]), adjusted))
        except DegenerateFit as err:
            logger.warning(err.message)
            warnings.warn(err.message, DegenerateFitWarning)
            skipped[point.speed_index] = err.message

    if not rows:
        frame = empty_frame(spp_data.ThrustDeduction)
        return DataSet[spp_data.ThrustDeduction](frame), skipped
    return DataSet[spp_data.ThrustDeduction](rows), skipped


def summarize(
    deductions: spp_data.ThrustDeductionDataSet,
    config: analysis_config.AnalysisConfig,
) -> pd.DataFrame | None:
    """Mean and spread of each estimator across all speeds. Needs every
    canonical speed, otherwise warns and returns None."""
    present = set(deductions.speed_index)
    missing = [b.froude_number for b in config.speed_buckets if b.number not in present]
    if missing or len(present) < config.expected_speeds:
        err = IncompleteSpeedCoverage(missing, "thrust deduction comparison")
        logger.warning(err.message)
        warnings.warn(err.message, IncompleteSpeedCoverageWarning)
        return None

    estimates = deductions.to_dataframe()[list(ESTIMATORS)]
    return pd.DataFrame(
        {
            "mean": estimates.mean(),
            "std": estimates.std(),
            "min": estimates.min(),
            "max": estimates.max(),
        }
    )
