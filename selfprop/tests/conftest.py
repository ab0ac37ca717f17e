from dataclasses import fields

import numpy as np
import pandas as pd
import pytest

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.run_data as run_data
import selfprop.spp_data as spp_data
from selfprop.pump_model import PumpBenchmark
from selfprop.run_averager import RunAverager

FROUDE_NUMBERS = (0.24, 0.26, 0.28, 0.30, 0.32, 0.34, 0.36, 0.38, 0.40)

# drag against gross thrust slope of the generated test, t = 1 + slope
SCENARIO_SLOPE = -0.9


def build_row(schema, **values):
    """Row of a dataclass schema, unspecified numeric fields set to zero."""
    row = {}
    for f in fields(schema):
        if f.name in values:
            value = values[f.name]
        elif f.type is bool:
            value = False
        elif f.type is int:
            value = 0
        else:
            value = 0.0
        if f.type not in (bool, int):
            value = np.float64(value)
        row[f.name] = value
    return schema(**row)


def model_speed(froude_number: float, config=None) -> float:
    config = config or analysis_config.AnalysisConfig()
    return froude_number * np.sqrt(
        config.constants.gravity * config.model.waterline_length
    )


def channel_table(samples: int = 101, duration: float = 1.0, **values) -> pd.DataFrame:
    """Calibrated channels of one run, each channel constant."""
    table = {channel: np.full(samples, 0.0) for channel in run_data.CHANNELS}
    table["time"] = np.linspace(0.0, duration, samples)
    for channel, value in values.items():
        table[channel] = np.full(samples, float(value))
    return pd.DataFrame(table)


@pytest.fixture
def make_run_record():
    def make(**values):
        return build_row(run_data.RunRecord, **values)

    return make


@pytest.fixture
def make_spp():
    def make(**values):
        return build_row(spp_data.SelfPropulsionPoint, **values)

    return make


@pytest.fixture
def linear_calibration():
    return flow_model.KielProbeCalibration(port=(0.0, 1.5), starboard=(0.0, 1.5))


@pytest.fixture
def scenario_config():
    """Nine speeds of three runs each, runs numbered from 1."""
    buckets = tuple(
        analysis_config.SpeedBucket(
            number=i + 1,
            froude_number=fr,
            runs=(3 * i + 1, 3 * i + 2, 3 * i + 3),
            boundary_layer_thickness=default.boundary_layer_thickness,
            boundary_layer_exponent=default.boundary_layer_exponent,
        )
        for i, (fr, default) in enumerate(
            zip(FROUDE_NUMBERS, analysis_config.DEFAULT_SPEED_BUCKETS)
        )
    )
    return analysis_config.AnalysisConfig(speed_buckets=buckets, speed_overrides={})


def scenario_channels(config, drag=None) -> dict[int, pd.DataFrame]:
    """Runs of every speed bucket with the kiel probe voltage equal to the
    model speed, scaled from 0.9 to 1.1 across the bucket's runs."""
    first_speed = model_speed(config.speed_buckets[0].froude_number, config)
    channels = {}
    for bucket in config.speed_buckets:
        speed = model_speed(bucket.froude_number, config)
        scale = speed / first_speed
        runs = sorted(bucket.runs)
        for run, factor in zip(runs, np.linspace(0.9, 1.1, len(runs))):
            channels[run] = channel_table(
                speed=speed,
                drag=0.0 if drag is None else drag[run],
                shaft_speed_port=2000.0 * scale * factor,
                shaft_speed_stbd=2000.0 * scale * factor,
                torque_port=0.3 * scale**2 * factor,
                torque_stbd=0.3 * scale**2 * factor,
                kiel_probe_port=speed * factor,
                kiel_probe_stbd=speed * factor,
            )
    return channels


def balanced_drag(config, calibration, slope=SCENARIO_SLOPE) -> dict[int, float]:
    """Drag of each run, in g, on a line against gross thrust that crosses
    the towing force at the gross thrust of the bucket's middle run."""
    records = (
        RunAverager(config, calibration)
        .solve_all(scenario_channels(config))
        .to_dataframe()
        .set_index("run")
    )
    drag = {}
    for bucket in config.speed_buckets:
        runs = sorted(bucket.runs)
        thrust_at_spp = records.gross_thrust_total[runs[len(runs) // 2]]
        for run in runs:
            force = (
                slope * (records.gross_thrust_total[run] - thrust_at_spp)
                + records.towing_force[run]
            )
            drag[run] = force * 1000 / config.constants.gravity
    return drag


def scenario_resistance(froude_number: float, config=None) -> float:
    """Bare hull resistance with a model total resistance coefficient of 0.006."""
    config = config or analysis_config.AnalysisConfig()
    return (
        0.006
        * 0.5
        * config.constants.fresh_water_density
        * config.model.wetted_surface_area
        * model_speed(froude_number, config) ** 2
    )


def scenario_pump_benchmark() -> PumpBenchmark:
    flow_rate = np.linspace(4.0, 10.0, 9)
    return PumpBenchmark(
        flow_rate=flow_rate,
        head=20.0 - 0.5 * (flow_rate - 4.0),
        efficiency=np.full(flow_rate.size, 0.88),
    )
