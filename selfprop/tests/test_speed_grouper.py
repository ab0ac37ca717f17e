import numpy as np
import pytest
from hypothesis import given, settings, strategies
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.run_data as run_data
import selfprop.speed_grouper as speed_grouper
from selfprop.analysis_error import IncompleteSpeedCoverageWarning, OutOfRangeRunWarning

from conftest import FROUDE_NUMBERS, build_row


def make_records(froude_numbers):
    return DataSet[run_data.RunRecord](
        [
            build_row(run_data.RunRecord, run=run, froude_number=fr)
            for run, fr in enumerate(froude_numbers, start=1)
        ]
    )


@given(
    froude_numbers=strategies.lists(
        strategies.sampled_from(FROUDE_NUMBERS), min_size=1, max_size=60
    )
)
@settings(deadline=None)
def test_every_run_lands_in_exactly_one_group(froude_numbers):
    config = analysis_config.AnalysisConfig()
    groups = speed_grouper.group_runs(make_records(froude_numbers), config)

    assert sum(len(group) for group in groups) == len(froude_numbers)
    runs = [run for group in groups for run in group.runs.run]
    assert sorted(runs) == list(range(1, len(froude_numbers) + 1))

    assert len(groups) == len(set(froude_numbers))
    assert all(len(group) > 0 for group in groups)
    assert [g.froude_number for g in groups] == sorted(g.froude_number for g in groups)
    for group in groups:
        assert (group.runs.froude_number == group.froude_number).all()
        assert (np.diff(group.runs.run.to_numpy()) > 0).all()
        assert FROUDE_NUMBERS[group.speed_index - 1] == group.froude_number


def test_duplicate_runs_are_rejected():
    records = DataSet[run_data.RunRecord](
        [
            build_row(run_data.RunRecord, run=1, froude_number=0.24),
            build_row(run_data.RunRecord, run=1, froude_number=0.26),
        ]
    )
    with pytest.raises(ValueError):
        speed_grouper.group_runs(records, analysis_config.AnalysisConfig())


def test_coverage():
    config = analysis_config.AnalysisConfig()

    complete = speed_grouper.group_runs(make_records(FROUDE_NUMBERS), config)
    assert speed_grouper.check_coverage(complete, config, "comparison")
    assert speed_grouper.missing_speeds(complete, config) == []

    partial = speed_grouper.group_runs(make_records([0.24, 0.30, 0.40]), config)
    assert speed_grouper.missing_speeds(partial, config) == [
        0.26,
        0.28,
        0.32,
        0.34,
        0.36,
        0.38,
    ]
    with pytest.warns(IncompleteSpeedCoverageWarning, match="0.26"):
        assert not speed_grouper.check_coverage(partial, config, "comparison")


def test_off_nominal_runs_do_not_share_a_speed_index():
    # runs 4 and 5 round to 0.29, between the 0.28 and 0.30 buckets
    records = make_records([0.30, 0.30, 0.30, 0.29, 0.29, 0.28])

    with pytest.warns(OutOfRangeRunWarning, match="Runs 4, 5 at Fr=0.29"):
        groups = speed_grouper.group_runs(records, analysis_config.AnalysisConfig())

    assert [group.speed_index for group in groups] == [3, 4]
    assert [list(group.runs.run) for group in groups] == [[6], [1, 2, 3]]


def test_buckets_must_be_distinct():
    buckets = analysis_config.DEFAULT_SPEED_BUCKETS
    with pytest.raises(ValueError):
        analysis_config.AnalysisConfig(speed_buckets=buckets + buckets[:1])
