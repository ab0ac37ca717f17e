import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import pandas as pd

import selfprop.analysis_config as analysis_config
import selfprop.flow_model as flow_model
import selfprop.full_scale_data as full_scale_data
import selfprop.run_data as run_data
import selfprop.sea_trial as sea_trial
import selfprop.speed_grouper as speed_grouper
import selfprop.spp_data as spp_data
import selfprop.thrust_deduction as thrust_deduction
from selfprop.full_scale_extrapolator import FullScaleExtrapolator
from selfprop.outlier_corrector import correct_outliers
from selfprop.pump_model import PumpBenchmark, PumpCurveModel
from selfprop.resistance_model import ResistanceModel
from selfprop.results_store import ResultsStore
from selfprop.run_averager import RunAverager
from selfprop.spp_extractor import SppExtractor

logger = logging.getLogger(__name__)


@dataclass
class AnalysisInputs:
    """External datasets of one self-propulsion test.

    Attributes:
    ----------
    channels (Mapping[int, pd.DataFrame])
        Calibrated channels of each run, keyed by run number.
    resistance_model (ResistanceModel)
        Bare hull resistance of the companion resistance test.
    pump_benchmark (PumpBenchmark)
        Manufacturer pump curve.
    calibration (KielProbeCalibration | None)
        Kiel probe calibration fitted to measured points. When None, the
        literature calibration named by the configuration is used.
    shaft_speeds (dict[int, float])
        Commanded shaft speed of each run, in RPM.
    sea_trials (pd.DataFrame | None)
        Sea trial power, only used for the final comparison.
    """

    channels: Mapping[int, pd.DataFrame]
    resistance_model: ResistanceModel
    pump_benchmark: PumpBenchmark
    calibration: flow_model.KielProbeCalibration | None = None
    shaft_speeds: dict[int, float] = field(default_factory=dict)
    sea_trials: pd.DataFrame | None = None


@dataclass
class AnalysisResult:
    """Tables produced by one analysis, and what was left out of them.

    `skipped` maps each dropped speed to the stage and reason it was
    dropped; `skipped_stages` names the whole stages that did not run.
    """

    runs: run_data.RunRecordDataSet
    groups: list[run_data.SpeedGroup]
    spp: spp_data.SelfPropulsionPointDataSet
    thrust_deduction: spp_data.ThrustDeductionDataSet
    full_scale: full_scale_data.FullScaleDataSet
    model_scale: full_scale_data.ModelScaleDataSet
    thrust_deduction_summary: pd.DataFrame | None = None
    sea_trial_comparison: pd.DataFrame | None = None
    skipped: dict[int, str] = field(default_factory=dict)
    skipped_stages: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped and not self.skipped_stages


@dataclass
class SelfPropulsionAnalysis:
    """Runs the stages in order: averaging, grouping, self-propulsion
    points, adjusted fitting, thrust deduction and full scale extrapolation.

    A stage whose table is found in the results store is loaded instead of
    computed, and every computed table is saved back.

    Attributes:
    ----------
    config (AnalysisConfig)
        Test configuration.
    store (ResultsStore | None)
        Results cache, disabled when None.
    """

    config: analysis_config.AnalysisConfig = field(
        default_factory=analysis_config.AnalysisConfig
    )
    store: ResultsStore | None = None

    def run(self, inputs: AnalysisInputs) -> AnalysisResult:
        """Analyses one test.

        Raises:
            MissingExternalDataset: an input needed by a stage is absent,
                nothing is computed past that point
        """
        config = self.config
        calibration = inputs.calibration or flow_model.literature_calibration(
            config.flow_calibration
        )
        skipped = {}
        skipped_stages = []

        runs = self._cached(
            "runs",
            lambda: RunAverager(
                config, calibration, inputs.shaft_speeds, inputs.resistance_model
            ).solve_all(inputs.channels),
        )

        groups = speed_grouper.group_runs(runs, config)
        if not speed_grouper.check_coverage(groups, config, "cross-speed comparisons"):
            skipped_stages.append("thrust deduction summary")

        def extract():
            points, dropped = SppExtractor(config, calibration).solve_all(groups)
            skipped.update(_stage(dropped, "self-propulsion point"))
            if config.adjusted_fitting:
                points = correct_outliers(points, config)
            return points

        # Cached tables carry no reasons, missing speeds are re-derived from them.
        spp = self._cached("spp", extract)
        _fill_missing(
            skipped, [group.speed_index for group in groups], spp, "self-propulsion point"
        )
        if config.adjusted_fitting and not spp.correction_applied.any():
            skipped_stages.append("adjusted fitting")

        resistances = {
            int(point["speed_index"]): float(
                inputs.resistance_model.solve(
                    float(point["froude_number"]), float(point["speed"])
                ).corrected_resistance
            )
            for point in spp.to_dataframe().to_dict("records")
        }

        def deduce():
            deductions, dropped = thrust_deduction.solve_all(spp, resistances)
            skipped.update(_stage(dropped, "thrust deduction"))
            return deductions

        deductions = self._cached("thrust_deduction", deduce)
        _fill_missing(skipped, spp.speed_index, deductions, "thrust deduction")
        summary = None
        if "thrust deduction summary" not in skipped_stages:
            summary = thrust_deduction.summarize(deductions, config)
            if summary is None:
                skipped_stages.append("thrust deduction summary")

        full_scale = self._load("full_scale")
        model_scale = self._load("model_scale")
        if full_scale is None or model_scale is None:
            extrapolator = FullScaleExtrapolator(
                config, PumpCurveModel(inputs.pump_benchmark)
            )
            full_scale, model_scale, dropped = extrapolator.solve_all(
                spp, deductions, resistances
            )
            skipped.update(_stage(dropped, "full scale extrapolation"))
            self._save("full_scale", full_scale)
            self._save("model_scale", model_scale)
        _fill_missing(
            skipped, deductions.speed_index, full_scale, "full scale extrapolation"
        )

        comparison = None
        if inputs.sea_trials is not None:
            comparison = sea_trial.compare(full_scale, inputs.sea_trials)
        else:
            logger.info("no sea trials supplied, nothing to compare with")

        for speed, reason in sorted(skipped.items()):
            logger.warning("speed %d skipped at %s", speed, reason)
        for stage in skipped_stages:
            logger.info("stage skipped: %s", stage)

        return AnalysisResult(
            runs=runs,
            groups=groups,
            spp=spp,
            thrust_deduction=deductions,
            full_scale=full_scale,
            model_scale=model_scale,
            thrust_deduction_summary=summary,
            sea_trial_comparison=comparison,
            skipped=skipped,
            skipped_stages=skipped_stages,
        )

    def _cached(self, stage: str, compute):
        table = self._load(stage)
        if table is None:
            table = compute()
            self._save(stage, table)
        return table

    def _load(self, stage: str):
        if self.store is None:
            return None
        return self.store.load(stage)

    def _save(self, stage: str, table):
        if self.store is not None:
            self.store.save(stage, table)


def _stage(dropped: dict[int, str], stage: str) -> dict[int, str]:
    return {speed: f"{stage}: {reason}" for speed, reason in dropped.items()}


def _fill_missing(skipped: dict[int, str], expected, table, stage: str) -> None:
    present = set(table.speed_index)
    for speed in expected:
        if speed not in present:
            skipped.setdefault(int(speed), f"{stage}: speed {speed} not computed")
