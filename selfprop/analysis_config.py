import hashlib
from dataclasses import dataclass, field
from enum import Enum

import numpy as np


KNOT = 0.514444  # m/s


class PumpPowerMethod(Enum):
    """How the pump effective power (PPE) is computed."""

    ITTC = "ittc"  # PPE = rho g Q H
    BOSE = "bose"  # PPE = E7 / eta_nozzle - eta_ideal E1


class FlowCalibration(Enum):
    """Kiel probe calibration era used to convert voltages to mass flow rate."""

    SEPT_2014 = "sept2014"
    JUNE_2013 = "june2013"


class SppMethod(Enum):
    """How the thrust at the self-propulsion point is located on the fit."""

    INTERSECTION = "intersection"  # fit crosses the horizontal towing force line
    ZERO_DRAG_OFFSET = "offset"  # thrust at zero drag minus towing force


@dataclass(frozen=True)
class PhysicalConstants:
    """Fluid properties shared by the model and full scale calculations.

    Attributes:
    ----------
    gravity (float)
        Gravitational acceleration, in m/s^2.
    fresh_water_density (float)
        Towing tank water density at test temperature, in kg/m^3.
    fresh_water_viscosity (float)
        Towing tank kinematic viscosity at test temperature, in m^2/s.
    salt_water_density (float)
        Sea water density, in kg/m^3.
    salt_water_viscosity (float)
        Sea water kinematic viscosity, in m^2/s.
    air_density (float)
        Air density, in kg/m^3.
    """

    gravity: float = 9.806
    fresh_water_density: float = 998.5048
    fresh_water_viscosity: float = 1.0411e-6
    salt_water_density: float = 1025.0187
    salt_water_viscosity: float = 1.0711e-6
    air_density: float = 1.2041


@dataclass(frozen=True)
class TowingTank:
    length: float = 100.0
    width: float = 3.5
    depth: float = 1.45
    water_temperature: float = 18.5
    sampling_frequency: float = 800.0

    @property
    def cross_section_area(self) -> float:
        return self.width * self.depth


@dataclass(frozen=True)
class ModelParticulars:
    """Demihull particulars of the scale model.

    Full scale values are derived from the scale ratio, so only the model
    values are stored.
    """

    scale_ratio: float = 21.6
    waterline_length: float = 4.30
    wetted_surface_area: float = 1.501
    draft: float = 0.133
    max_section_area: float = 0.024
    block_coefficient: float = 0.592
    form_factor: float = 1.18
    hull_roughness: float = 150e-6

    @property
    def full_scale_waterline_length(self) -> float:
        return self.waterline_length * self.scale_ratio

    @property
    def full_scale_wetted_surface_area(self) -> float:
        return self.wetted_surface_area * self.scale_ratio**2

    @property
    def full_scale_draft(self) -> float:
        return self.draft * self.scale_ratio


@dataclass(frozen=True)
class WaterjetGeometry:
    """Waterjet dimensions, given at full scale.

    Attributes:
    ----------
    width_factor (float)
        Ratio between the inlet capture width and the pump diameter.
    pump_diameter (float)
        Pump diameter at the inlet, in m.
    nozzle_diameter (float)
        Effective nozzle diameter, in m.
    impeller_diameter (float)
        Impeller diameter, in m.
    """

    width_factor: float = 1.3
    pump_diameter: float = 1.2
    nozzle_diameter: float = 0.72
    impeller_diameter: float = 1.582
    nozzle_efficiency: float = 0.98
    intake_efficiency: float = 1.0
    installation_efficiency: float = 1.0
    shaft_efficiency: float = 0.98
    gearbox_efficiency: float = 0.98

    @property
    def nozzle_area(self) -> float:
        return np.pi * (self.nozzle_diameter / 2) ** 2

    def model_pump_diameter(self, scale_ratio: float) -> float:
        return self.pump_diameter / scale_ratio

    def model_impeller_diameter(self, scale_ratio: float) -> float:
        return self.impeller_diameter / scale_ratio

    def model_nozzle_area(self, scale_ratio: float) -> float:
        return np.pi * ((self.nozzle_diameter / 2) / scale_ratio) ** 2


@dataclass(frozen=True)
class AirResistance:
    drag_coefficient: float = 0.446
    projected_area: float = 341.5 / 2


@dataclass(frozen=True)
class SpeedBucket:
    """One nominal test speed: which runs were recorded at it and the
    boundary layer measured ahead of the inlet at that speed."""

    number: int
    froude_number: float
    runs: tuple[int, ...]
    boundary_layer_thickness: float
    boundary_layer_exponent: float


@dataclass(frozen=True)
class SpeedOverride:
    """Rows of one speed group (1-indexed, inclusive, ordered by run number)
    used for its fits, and the row whose port to total thrust ratio splits
    the thrust between the two waterjets."""

    first_row: int
    last_row: int
    ratio_row: int | None = None

    def select(self, size: int) -> slice:
        if self.first_row < 1 or self.last_row > size or self.first_row > self.last_row:
            raise ValueError(
                f"Rows {self.first_row}..{self.last_row} do not fit a group of {size} runs."
            )
        return slice(self.first_row - 1, self.last_row)


DEFAULT_SPEED_BUCKETS = (
    SpeedBucket(1, 0.24, (101, 102, 103, 107), 0.04546, 6.672),
    SpeedBucket(2, 0.26, (98, 99, 100, 108), 0.04548, 6.672),
    SpeedBucket(3, 0.28, (95, 96, 97, 109), 0.04519, 6.672),
    SpeedBucket(4, 0.30, (70, 104, 71, 72, 73, 74), 0.04459, 6.672),
    SpeedBucket(5, 0.32, (75, 76, 78, 77), 0.04369, 6.672),
    SpeedBucket(6, 0.34, (79, 80, 81), 0.04248, 6.672),
    SpeedBucket(7, 0.36, (82, 83, 84), 0.04097, 6.672),
    SpeedBucket(8, 0.38, (85, 86, 87, 88, 89, 105, 106), 0.03915, 6.672),
    SpeedBucket(9, 0.40, (90, 91, 92, 93, 94), 0.03702, 6.672),
)


def _default_overrides() -> dict[int, SpeedOverride]:
    # Runs 70 and 71 at the fourth speed have unreliable thrust readings.
    return {4: SpeedOverride(first_row=3, last_row=6, ratio_row=3)}


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything the self-propulsion analysis needs besides measured data.

    Attributes:
    ----------
    correlation_allowance (float)
        Ca subtracted in the towing force, 0.00035 as used by MARIN.
    bose_correlation_allowance (bool)
        Replace `correlation_allowance` by the roughness based value
        from Bose (2008), eqn 2-4.
    adjusted_fitting (bool)
        Replace the force at zero thrust of speeds 6, 8 and 9 by values
        interpolated from their neighbours.
    wake_rudder_component (bool)
        Add the rudder component when scaling the wake fraction.
    pump_power_method (PumpPowerMethod)
        Pump effective power formula.
    flow_calibration (FlowCalibration)
        Literature kiel probe calibration used when no calibration
        dataset is supplied.
    spp_method (SppMethod)
        How the thrust at the self-propulsion point is located.
    blockage_correction (bool)
        Apply the Schuster blockage correction to the model speed
        before computing Reynolds numbers.
    thrust_deduction_formula (int)
        Which of the five thrust deduction estimators feeds the
        full scale extrapolation.
    first_sample (int)
        Number of samples skipped at the start of each run.
    samples_cut_from_end (int)
        Number of samples dropped at the end of each run.
    expected_speeds (int)
        Number of distinct speeds of a complete test.
    """

    constants: PhysicalConstants = field(default_factory=PhysicalConstants)
    tank: TowingTank = field(default_factory=TowingTank)
    model: ModelParticulars = field(default_factory=ModelParticulars)
    waterjet: WaterjetGeometry = field(default_factory=WaterjetGeometry)
    air: AirResistance = field(default_factory=AirResistance)
    speed_buckets: tuple[SpeedBucket, ...] = DEFAULT_SPEED_BUCKETS
    speed_overrides: dict[int, SpeedOverride] = field(
        default_factory=_default_overrides
    )
    correlation_allowance: float = 0.00035
    bose_correlation_allowance: bool = False
    adjusted_fitting: bool = True
    wake_rudder_component: bool = False
    pump_power_method: PumpPowerMethod = PumpPowerMethod.ITTC
    flow_calibration: FlowCalibration = FlowCalibration.SEPT_2014
    spp_method: SppMethod = SppMethod.INTERSECTION
    blockage_correction: bool = False
    thrust_deduction_formula: int = 3
    first_sample: int = 0
    samples_cut_from_end: int = 0
    expected_speeds: int = 9

    def __post_init__(self):
        if self.first_sample < 0 or self.samples_cut_from_end < 0:
            raise ValueError("Sample trimming counts must be >= 0.")
        if self.thrust_deduction_formula not in range(1, 6):
            raise ValueError("Parameter 'thrust_deduction_formula' must be in 1..5.")
        numbers = [bucket.number for bucket in self.speed_buckets]
        froude_numbers = [round(bucket.froude_number, 2) for bucket in self.speed_buckets]
        if len(set(numbers)) < len(numbers) or len(set(froude_numbers)) < len(numbers):
            raise ValueError("Speed buckets must have distinct numbers and Froude numbers.")

    @property
    def ca(self) -> float:
        """Correlation allowance used by the towing force."""
        if self.bose_correlation_allowance:
            ratio = self.model.hull_roughness / self.model.full_scale_waterline_length
            return (105 * ratio ** (1 / 3) - 0.64) * 1e-3
        return self.correlation_allowance

    def bucket_for_run(self, run: int) -> SpeedBucket | None:
        for bucket in self.speed_buckets:
            if run in bucket.runs:
                return bucket
        return None

    def bucket_for_froude_number(self, froude_number: float) -> SpeedBucket | None:
        """Bucket whose nominal Froude number equals a rounded one."""
        for bucket in self.speed_buckets:
            if np.isclose(bucket.froude_number, froude_number):
                return bucket
        return None

    @property
    def run_range(self) -> tuple[int, int]:
        runs = [run for bucket in self.speed_buckets for run in bucket.runs]
        return min(runs), max(runs)

    def averaging_key(self) -> str:
        """Part of the cache file names that decides how runs are averaged."""
        buckets = hashlib.sha1(repr(self.speed_buckets).encode()).hexdigest()[:8]
        return "_".join(
            [
                f"s{self.first_sample}-{self.samples_cut_from_end}",
                f"b{buckets}",
                f"bc{int(self.blockage_correction)}",
            ]
        )

    def cache_key(self) -> str:
        """Configuration part of the results cache file names."""
        overrides = hashlib.sha1(
            repr(sorted(self.speed_overrides.items())).encode()
        ).hexdigest()[:8]
        return "_".join(
            [
                self.averaging_key(),
                f"o{overrides}",
                f"ca{self.ca:.5f}",
                f"adj{int(self.adjusted_fitting)}",
                self.pump_power_method.value,
                self.flow_calibration.value,
                self.spp_method.value,
                f"rud{int(self.wake_rudder_component)}",
                f"t{self.thrust_deduction_formula}",
            ]
        )
