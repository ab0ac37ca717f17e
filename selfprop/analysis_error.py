class AnalysisError(Exception):
    """Exception raised for errors during the self-propulsion analysis.

    Attributes:
        message -- explanation of the error
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class MissingExternalDataset(AnalysisError):
    """A required input table is absent. Aborts the whole analysis."""

    def __init__(self, dataset: str, location: str = "") -> None:
        self.dataset = dataset
        message = f"Required dataset '{dataset}' is missing"
        if location:
            message += f" (looked for {location})"
        super().__init__(message)


class IncompleteSpeedCoverage(AnalysisError):
    def __init__(self, missing_froude_numbers: list[float], stage: str) -> None:
        self.missing_froude_numbers = missing_froude_numbers
        self.stage = stage
        missing = ", ".join(f"{fr:.2f}" for fr in missing_froude_numbers)
        super().__init__(f"Speeds Fr={missing} are missing, skipping {stage}")


class DegenerateFit(AnalysisError):
    """A fit or solve has no meaningful answer for one speed and channel."""

    def __init__(self, message: str, channel: str = "", speed: int | None = None):
        self.reason = message
        self.channel = channel
        self.speed = speed
        prefix = ""
        if speed is not None:
            prefix += f"speed {speed}: "
        if channel:
            prefix += f"{channel}: "
        super().__init__(prefix + message)


class OutOfRangeRun(AnalysisError):
    def __init__(self, run: int) -> None:
        self.run = run
        super().__init__(f"Run {run} is not in any speed bucket, excluded")


class OffNominalSpeed(AnalysisError):
    """Runs whose rounded Froude number is not a nominal test speed."""

    def __init__(self, froude_number: float, runs: list[int]) -> None:
        self.froude_number = froude_number
        self.runs = runs
        listed = ", ".join(str(run) for run in runs)
        super().__init__(
            f"Runs {listed} at Fr={froude_number:.2f} match no nominal speed, excluded"
        )


class AnalysisWarning(UserWarning):
    pass


class OutOfRangeRunWarning(AnalysisWarning):
    pass


class IncompleteSpeedCoverageWarning(AnalysisWarning):
    pass


class DegenerateFitWarning(AnalysisWarning):
    pass
