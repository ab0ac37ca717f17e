import logging

import numpy as np
import pandas as pd

import selfprop.full_scale_data as full_scale_data

logger = logging.getLogger(__name__)


def compare(
    full_scale: full_scale_data.FullScaleDataSet, sea_trials: pd.DataFrame
) -> pd.DataFrame:
    """Predicted delivered power against the sea trial power at the same
    full scale speed.

    The trial power is linearly interpolated at each predicted speed, and
    is NaN outside the speed range of the trials. When the trials carry a
    `trial` column, each trial is compared separately.

    Args:
        full_scale (FullScaleDataSet): extrapolated full scale performance
        sea_trials (pd.DataFrame): `speed_knots` and `power_kw` columns

    Returns:
        pd.DataFrame: one row per speed (and trial) with the predicted and
            trial power, in kW, and their ratio
    """
    predicted = full_scale.to_dataframe()
    speed_knots = predicted["speed_knots"].to_numpy(dtype=np.float64)
    delivered_power = (
        predicted["delivered_power_port"] + predicted["delivered_power_stbd"]
    ).to_numpy(dtype=np.float64) / 1000

    if "trial" in sea_trials.columns:
        trials = list(sea_trials.groupby("trial", sort=True))
    else:
        trials = [("sea trial", sea_trials)]

    frames = []
    for name, trial in trials:
        trial = trial.sort_values("speed_knots")
        trial_power = np.interp(
            speed_knots,
            trial["speed_knots"].to_numpy(dtype=np.float64),
            trial["power_kw"].to_numpy(dtype=np.float64),
            left=np.nan,
            right=np.nan,
        )
        frames.append(
            pd.DataFrame(
                {
                    "trial": name,
                    "speed_index": predicted["speed_index"].to_numpy(),
                    "speed_knots": speed_knots,
                    "predicted_power_kw": delivered_power,
                    "trial_power_kw": trial_power,
                    "power_ratio": delivered_power / trial_power,
                }
            )
        )
        logger.info(
            "%s: %d of %d speeds inside the trial range",
            name,
            int(np.isfinite(trial_power).sum()),
            len(speed_knots),
        )

    return pd.concat(frames, ignore_index=True)
