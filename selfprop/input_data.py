import logging
import re
from pathlib import Path

import numpy as np
import pandas as pd

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.run_data as run_data
from selfprop.analysis_error import MissingExternalDataset
from selfprop.pump_model import PumpBenchmark
from selfprop.resistance_model import TemperatureCorrectedResistance

logger = logging.getLogger(__name__)

RUN_FILE_PATTERN = re.compile(r"run_(\d+)\.csv$")

SHAFT_SPEED_FILE = "shaft_speeds.csv"
RESISTANCE_FILE = "resistance.csv"
KIEL_PROBE_CALIBRATION_FILE = "kiel_probe_calibration.csv"
PUMP_BENCHMARK_FILE = "pump_benchmark.csv"
SEA_TRIAL_FILE = "sea_trials.csv"


def open_table(filename, dataset: str, columns) -> pd.DataFrame:
    """Reads a CSV table and checks it has the required columns."""
    filename = Path(filename)
    if not filename.is_file():
        raise MissingExternalDataset(dataset, str(filename))

    df = pd.read_csv(filename)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{filename} lacks columns: {', '.join(missing)}")
    return df


def run_filename(directory, run: int) -> Path:
    return Path(directory) / f"run_{run:03d}.csv"


def open_run(filename) -> pd.DataFrame:
    """Calibrated channels of one run, columns as `run_data.CHANNELS`."""
    df = open_table(filename, "run channels", run_data.CHANNELS)
    return df[list(run_data.CHANNELS)].astype(np.float64)


def open_runs(directory, runs=None) -> dict[int, pd.DataFrame]:
    """Every `run_<NNN>.csv` under `directory`, keyed by run number.

    When `runs` is given only those are read, and each of them must exist.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise MissingExternalDataset("run channels", str(directory))

    if runs is not None:
        return {run: open_run(run_filename(directory, run)) for run in runs}

    channels = {}
    for filename in sorted(directory.iterdir()):
        match = RUN_FILE_PATTERN.match(filename.name)
        if match:
            channels[int(match.group(1))] = open_run(filename)

    if not channels:
        raise MissingExternalDataset("run channels", str(directory / "run_*.csv"))
    logger.info("read %d runs from %s", len(channels), directory)
    return channels


def open_shaft_speeds(filename) -> dict[int, float]:
    """Commanded shaft speed of each run, in RPM."""
    df = open_table(filename, "shaft speed list", ("run", "shaft_speed_rpm"))
    return {int(r): float(n) for r, n in zip(df["run"], df["shaft_speed_rpm"])}


def open_resistance(
    filename, config: analysis_config.AnalysisConfig
) -> TemperatureCorrectedResistance:
    """Bare hull resistance test, fitted and corrected to the
    self-propulsion test water temperature."""
    df = open_table(filename, "bare hull resistance", ("froude_number", "resistance_n"))
    return TemperatureCorrectedResistance(
        froude_numbers=df["froude_number"].to_numpy(dtype=np.float64),
        resistances=df["resistance_n"].to_numpy(dtype=np.float64),
        config=config,
    )


def open_kiel_probe_calibration(filename) -> flow_model.KielProbeCalibration:
    """Calibration points, one row per (side, voltage, mass flow rate)."""
    df = open_table(
        filename, "kiel probe calibration", ("side", "voltage", "mass_flow_rate")
    )
    port = df[df["side"] == flow_model.Side.PORT.value]
    stbd = df[df["side"] == flow_model.Side.STARBOARD.value]
    return flow_model.fit_calibration(
        port["voltage"].to_numpy(dtype=np.float64),
        port["mass_flow_rate"].to_numpy(dtype=np.float64),
        stbd["voltage"].to_numpy(dtype=np.float64),
        stbd["mass_flow_rate"].to_numpy(dtype=np.float64),
    )


def open_pump_benchmark(filename, shaft_speed: float = 568.0) -> PumpBenchmark:
    df = open_table(filename, "pump benchmark", ("efficiency", "flow_rate", "head"))
    return PumpBenchmark(
        flow_rate=df["flow_rate"].to_numpy(dtype=np.float64),
        head=df["head"].to_numpy(dtype=np.float64),
        efficiency=df["efficiency"].to_numpy(dtype=np.float64),
        shaft_speed=shaft_speed,
    )


def open_sea_trials(filename) -> pd.DataFrame:
    """Corrected sea trial power, in kW, against speed, in knots."""
    df = open_table(filename, "sea trials", ("speed_knots", "power_kw"))
    return df.sort_values("speed_knots").reset_index(drop=True)
