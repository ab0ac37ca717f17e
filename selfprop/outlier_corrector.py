import logging
import warnings

import numpy as np
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.spp_data as spp_data
from selfprop.analysis_error import (
    IncompleteSpeedCoverage,
    IncompleteSpeedCoverageWarning,
)
from selfprop.utils import fit_line

logger = logging.getLogger(__name__)

# The raw self-propulsion fits of speeds 6, 8 and 9 are unreliable. The
# first two are replaced by the midpoint of their neighbours, the last is
# extrapolated from the slope trend of speeds 1 to 8.
INTERPOLATED_SPEEDS = {6: (5, 7), 8: (7, 9)}
EXTRAPOLATED_SPEED = 9
TREND_SPEEDS = tuple(range(1, 9))
REQUIRED_SPEEDS = tuple(range(1, 10))


@typechecked
def correct_outliers(
    spp: spp_data.SelfPropulsionPointDataSet,
    config: analysis_config.AnalysisConfig,
) -> spp_data.SelfPropulsionPointDataSet:
    """Adjusted fitting of the force at zero thrust.

    Always starts from the raw fit values, so applying it again gives the
    same result. Speeds other than 6, 8 and 9 are returned untouched.

    Args:
        spp (SelfPropulsionPointDataSet): self-propulsion points as
            extracted from the measurements
        config (AnalysisConfig): test configuration, names the speeds

    Returns:
        SelfPropulsionPointDataSet: points with the corrected slope and
            force at zero thrust, tagged by `correction_applied`
    """
    frame = spp.to_dataframe().set_index("speed_index", drop=False)

    missing = [s for s in REQUIRED_SPEEDS if s not in frame.index]
    if missing:
        missing_froude_numbers = [
            b.froude_number for b in config.speed_buckets if b.number in missing
        ]
        err = IncompleteSpeedCoverage(missing_froude_numbers, "adjusted fitting")
        logger.warning(err.message)
        warnings.warn(err.message, IncompleteSpeedCoverageWarning)
        return spp

    force = frame.raw_force_at_zero_thrust.to_dict()
    slope = frame.raw_fit_slope.to_dict()
    thrust_at_zero_drag = frame.thrust_at_zero_drag.to_dict()

    corrected_force = {}
    for speed, (below, above) in INTERPOLATED_SPEEDS.items():
        corrected_force[speed] = (force[above] - force[below]) / 2 + force[below]
        slope[speed] = -corrected_force[speed] / thrust_at_zero_drag[speed]

    trend = fit_line(
        [thrust_at_zero_drag[s] for s in TREND_SPEEDS],
        [slope[s] for s in TREND_SPEEDS],
        "slope trend",
    )
    slope[EXTRAPOLATED_SPEED] = trend(thrust_at_zero_drag[EXTRAPOLATED_SPEED])
    corrected_force[EXTRAPOLATED_SPEED] = (
        -slope[EXTRAPOLATED_SPEED] * thrust_at_zero_drag[EXTRAPOLATED_SPEED]
    )

    frame = frame.copy()
    frame["fit_slope"] = frame["raw_fit_slope"]
    frame["force_at_zero_thrust"] = frame["raw_force_at_zero_thrust"]
    frame["correction_applied"] = False
    for speed, value in corrected_force.items():
        frame.loc[speed, "force_at_zero_thrust"] = np.float64(value)
        frame.loc[speed, "fit_slope"] = np.float64(slope[speed])
        frame.loc[speed, "correction_applied"] = True
        logger.debug(
            "speed %d: force at zero thrust %.4f -> %.4f N",
            speed,
            force[speed],
            value,
        )

    return DataSet[spp_data.SelfPropulsionPoint](frame.reset_index(drop=True))
