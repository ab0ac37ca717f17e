import logging
import warnings

import numpy as np
from typeguard import typechecked
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.run_data as run_data
from selfprop.analysis_error import (
    IncompleteSpeedCoverage,
    IncompleteSpeedCoverageWarning,
    OffNominalSpeed,
    OutOfRangeRunWarning,
)

logger = logging.getLogger(__name__)


@typechecked
def group_runs(
    records: run_data.RunRecordDataSet,
    config: analysis_config.AnalysisConfig,
) -> list[run_data.SpeedGroup]:
    """Partitions the runs by rounded Froude number.

    Groups are sorted by increasing Froude number and the runs of each
    group by run number. Each group takes the speed index of the bucket
    with the same nominal Froude number, so no two groups share one. Runs
    whose Froude number matches no bucket are excluded with a warning,
    every other run lands in exactly one group.
    """
    if records.run.duplicated().any():
        raise ValueError("Run numbers must be unique.")

    frame = records.to_dataframe().sort_values("run")
    groups = []
    for froude_number in np.unique(frame.froude_number.to_numpy()):
        runs = (
            frame[frame.froude_number == froude_number]
            .reset_index(drop=True)
            .pipe(DataSet[run_data.RunRecord])
        )
        bucket = config.bucket_for_froude_number(float(froude_number))
        if bucket is None:
            err = OffNominalSpeed(float(froude_number), runs.run.tolist())
            logger.warning(err.message)
            warnings.warn(err.message, OutOfRangeRunWarning)
            continue
        groups.append(
            run_data.SpeedGroup(
                speed_index=bucket.number,
                froude_number=float(froude_number),
                runs=runs,
            )
        )

    logger.info(
        "grouped %d runs into %d speeds",
        sum(len(group) for group in groups),
        len(groups),
    )
    return groups


def missing_speeds(
    groups: list[run_data.SpeedGroup], config: analysis_config.AnalysisConfig
) -> list[float]:
    """Nominal Froude numbers of the canonical speeds without a group."""
    present = {group.speed_index for group in groups}
    return [
        bucket.froude_number
        for bucket in config.speed_buckets
        if bucket.number not in present
    ]


def check_coverage(
    groups: list[run_data.SpeedGroup],
    config: analysis_config.AnalysisConfig,
    stage: str,
) -> bool:
    """Warns and returns False when fewer speeds than expected were tested."""
    missing = missing_speeds(groups, config)
    if len(groups) >= config.expected_speeds and not missing:
        return True

    err = IncompleteSpeedCoverage(missing, stage)
    logger.warning(err.message)
    warnings.warn(err.message, IncompleteSpeedCoverageWarning)
    return False
