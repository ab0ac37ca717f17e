import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd
from strictly_typed_pandas.dataset import DataSet

import selfprop.analysis_config as analysis_config
import selfprop.full_scale_data as full_scale_data
import selfprop.run_data as run_data
import selfprop.spp_data as spp_data
from selfprop.utils import schema_dtypes

logger = logging.getLogger(__name__)

# Stage name -> row schema
STAGES = {
    "runs": run_data.RunRecord,
    "spp": spp_data.SelfPropulsionPoint,
    "thrust_deduction": spp_data.ThrustDeduction,
    "full_scale": full_scale_data.PerformanceRow,
    "model_scale": full_scale_data.PerformanceRow,
}


@dataclass
class ResultsStore:
    """Directory of CSV files, one per analysis stage, named after the run
    range and the configuration the stage depends on.

    Attributes:
    ----------
    directory (Path)
        Where the stage files live, created on the first save.
    config (AnalysisConfig)
        Configuration of the analysis whose results are stored.
    calibration_tag (str)
        Identifies the kiel probe calibration the runs were averaged with.
    """

    directory: Path
    config: analysis_config.AnalysisConfig
    calibration_tag: str = ""

    def __post_init__(self):
        self.directory = Path(self.directory)
        if not self.calibration_tag:
            self.calibration_tag = self.config.flow_calibration.value

    def filename(self, stage: str) -> Path:
        if stage not in STAGES:
            raise ValueError(f"Unknown stage '{stage}'.")

        first, last = self.config.run_range
        name = f"{stage}_{first}-{last}"
        if stage == "runs":
            # Averaging only depends on the calibration, the trimming and the buckets.
            name += f"_{self.calibration_tag}_{self.config.averaging_key()}"
        else:
            name += f"_{self.calibration_tag}_{self.config.cache_key()}"
        return self.directory / f"{name}.csv"

    def load(self, stage: str):
        """The stored table of a stage, or None when it was never saved."""
        filename = self.filename(stage)
        if not filename.is_file():
            return None

        schema = STAGES[stage]
        frame = pd.read_csv(filename, dtype=schema_dtypes(schema))
        logger.info("loaded %s from %s", stage, filename)
        return DataSet[schema](frame)

    def save(self, stage: str, table) -> Path:
        """Writes a stage table. The file only appears once complete."""
        filename = self.filename(stage)
        filename.parent.mkdir(parents=True, exist_ok=True)

        partial = filename.with_name(filename.name + ".partial")
        table.to_dataframe().to_csv(partial, index=False)
        partial.replace(filename)

        logger.info("saved %s to %s", stage, filename)
        return filename
