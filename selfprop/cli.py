"""Command line entry point of the self-propulsion analysis.

The data directory holds the calibrated runs (`run_<NNN>.csv`), the bare
hull resistance (`resistance.csv`) and the pump benchmark
(`pump_benchmark.csv`). The shaft speed list (`shaft_speeds.csv`), a
measured kiel probe calibration (`kiel_probe_calibration.csv`) and the
sea trials (`sea_trials.csv`) are read when present.

Usage:
    python -m selfprop.cli data/
    python -m selfprop.cli data/ --cache-dir results/ --ca 0 --ppe-method bose
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd

import selfprop.analysis_config as analysis_config
import selfprop.input_data as input_data
from selfprop.analysis_error import AnalysisError
from selfprop.pipeline import AnalysisInputs, SelfPropulsionAnalysis
from selfprop.results_store import ResultsStore

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "speed_index",
    "froude_number",
    "speed_knots",
    "shaft_speed_port",
    "shaft_speed_stbd",
    "effective_power",
    "delivered_power_port",
    "delivered_power_stbd",
    "propulsive_efficiency",
    "propulsive_efficiency_thrust",
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="selfprop",
        description="Waterjet self-propulsion analysis and full scale extrapolation",
    )
    parser.add_argument("data_dir", type=Path, help="directory with the input tables")
    parser.add_argument(
        "--cache-dir", type=Path, default=None, help="results cache directory"
    )
    parser.add_argument(
        "--ca", type=float, default=None, help="correlation allowance (default 0.00035)"
    )
    parser.add_argument(
        "--bose-ca",
        action="store_true",
        help="roughness based correlation allowance, Bose (2008)",
    )
    parser.add_argument(
        "--no-adjusted-fitting",
        action="store_true",
        help="keep the measured fits of speeds 6, 8 and 9",
    )
    parser.add_argument(
        "--ppe-method",
        choices=[m.value for m in analysis_config.PumpPowerMethod],
        default=analysis_config.PumpPowerMethod.ITTC.value,
        help="pump effective power formula",
    )
    parser.add_argument(
        "--calibration",
        choices=[c.value for c in analysis_config.FlowCalibration],
        default=analysis_config.FlowCalibration.SEPT_2014.value,
        help="literature kiel probe calibration, when none is measured",
    )
    parser.add_argument(
        "--spp-method",
        choices=[m.value for m in analysis_config.SppMethod],
        default=analysis_config.SppMethod.INTERSECTION.value,
        help="how the self-propulsion thrust is read off the fit",
    )
    parser.add_argument(
        "--blockage-correction", action="store_true", help="Schuster speed correction"
    )
    parser.add_argument(
        "--rudder-wake", action="store_true", help="add the rudder wake component"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output")
    return parser


def config_from_args(args: argparse.Namespace) -> analysis_config.AnalysisConfig:
    config = analysis_config.AnalysisConfig(
        bose_correlation_allowance=args.bose_ca,
        adjusted_fitting=not args.no_adjusted_fitting,
        wake_rudder_component=args.rudder_wake,
        pump_power_method=analysis_config.PumpPowerMethod(args.ppe_method),
        flow_calibration=analysis_config.FlowCalibration(args.calibration),
        spp_method=analysis_config.SppMethod(args.spp_method),
        blockage_correction=args.blockage_correction,
    )
    if args.ca is not None:
        config = replace(config, correlation_allowance=args.ca)
    return config


def load_inputs(
    data_dir: Path, config: analysis_config.AnalysisConfig
) -> tuple[AnalysisInputs, str]:
    """Reads the input tables. Also returns the tag of the kiel probe
    calibration in use, for the results cache."""
    calibration = None
    calibration_tag = config.flow_calibration.value
    calibration_file = data_dir / input_data.KIEL_PROBE_CALIBRATION_FILE
    if calibration_file.is_file():
        calibration = input_data.open_kiel_probe_calibration(calibration_file)
        calibration_tag = "measured"

    shaft_speeds = {}
    shaft_speed_file = data_dir / input_data.SHAFT_SPEED_FILE
    if shaft_speed_file.is_file():
        shaft_speeds = input_data.open_shaft_speeds(shaft_speed_file)

    sea_trials = None
    sea_trial_file = data_dir / input_data.SEA_TRIAL_FILE
    if sea_trial_file.is_file():
        sea_trials = input_data.open_sea_trials(sea_trial_file)

    inputs = AnalysisInputs(
        channels=input_data.open_runs(data_dir),
        resistance_model=input_data.open_resistance(
            data_dir / input_data.RESISTANCE_FILE, config
        ),
        pump_benchmark=input_data.open_pump_benchmark(
            data_dir / input_data.PUMP_BENCHMARK_FILE
        ),
        calibration=calibration,
        shaft_speeds=shaft_speeds,
        sea_trials=sea_trials,
    )
    return inputs, calibration_tag


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    try:
        inputs, calibration_tag = load_inputs(args.data_dir, config)
        store = None
        if args.cache_dir is not None:
            store = ResultsStore(args.cache_dir, config, calibration_tag)
        result = SelfPropulsionAnalysis(config, store).run(inputs)
    except AnalysisError as err:
        logger.error(err.message)
        return 1

    with pd.option_context("display.width", 200, "display.max_columns", None):
        print(result.full_scale.to_dataframe()[SUMMARY_COLUMNS].to_string(index=False))
        if result.sea_trial_comparison is not None:
            print()
            print(result.sea_trial_comparison.to_string(index=False))

    return 0 if result.complete else 2


if __name__ == "__main__":
    sys.exit(main())
