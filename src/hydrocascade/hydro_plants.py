"""Hydro plant records consumed by the cascade topology and the water-balance model.

Three plant variants are modeled:
- Reservoir: storage plant that may discharge into a downstream plant
- Run-of-River: no meaningful storage, may discharge into a downstream plant
- Pumped Storage: closed upper/lower reservoir pair, never part of a cascade

The variants form a closed set (``HydroPlant``). Only the variants that can
discharge into another plant carry ``downstream_plant_id``; every variant
exposes ``cascade_link`` so the topology code never has to inspect types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union


class PlantKind(str, Enum):
    RESERVOIR = "Reservoir"
    RUN_OF_RIVER = "RunOfRiver"
    PUMPED_STORAGE = "PumpedStorage"


####################################################################################|
# ----------------------------------- Validation -----------------------------------|
####################################################################################|

def _check_text(value, field_name: str):
    if not isinstance(value, str) or value.strip() == "":
        raise ValueError(f"{field_name} must be a non-empty string, got {value!r}")


def _check_non_negative(value: float, field_name: str):
    if value < 0:
        raise ValueError(f"{field_name} must be non-negative, got {value}")


def _check_strictly_positive(value: float, field_name: str):
    if value <= 0:
        raise ValueError(f"{field_name} must be strictly positive, got {value}")


def _check_min_leq_max(min_value: float, max_value: float, min_name: str, max_name: str):
    if min_value > max_value:
        raise ValueError(f"{min_name} ({min_value}) must be <= {max_name} ({max_value})")


def _check_fraction(value: float, field_name: str):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{field_name} must be between 0 and 1, got {value}")


def _check_volume_range(min_volume: float, max_volume: float, initial_volume: float, prefix: str = ""):
    _check_strictly_positive(max_volume, f"{prefix}max_volume_hm3")
    _check_non_negative(min_volume, f"{prefix}min_volume_hm3")
    _check_min_leq_max(min_volume, max_volume, f"{prefix}min_volume_hm3", f"{prefix}max_volume_hm3")
    _check_non_negative(initial_volume, f"{prefix}initial_volume_hm3")
    if not min_volume <= initial_volume <= max_volume:
        raise ValueError(
            f"{prefix}initial_volume_hm3 ({initial_volume}) must be within "
            f"[{min_volume}, {max_volume}]"
        )


def _check_cascade_fields(downstream_plant_id: Optional[str], water_travel_time_hours: float):
    if downstream_plant_id is not None:
        _check_text(downstream_plant_id, "downstream_plant_id")
    _check_non_negative(water_travel_time_hours, "water_travel_time_hours")


####################################################################################|
# ---------------------------------- Plant records ---------------------------------|
####################################################################################|

@dataclass(frozen=True)
class ReservoirHydro:
    """
    Hydroelectric plant with a storage reservoir.

    Attributes:
        id (str): Unique plant identifier.
        name (str): Human-readable plant name.
        submarket_id (str): Submarket the plant belongs to.
        max_volume_hm3 (float): Maximum reservoir volume (hm3).
        min_volume_hm3 (float): Minimum reservoir volume, dead storage (hm3).
        initial_volume_hm3 (float): Volume at the start of the horizon (hm3).
        max_outflow_m3_per_s (float): Maximum turbined outflow (m3/s).
        min_outflow_m3_per_s (float): Minimum outflow, e.g. environmental flow (m3/s).
        max_generation_mw (float): Maximum generation (MW).
        min_generation_mw (float): Minimum generation (MW).
        efficiency (float): Generation efficiency in [0, 1].
        water_value_per_hm3 (float): Opportunity cost of stored water.
        must_run (bool): Plant must run when water is available.
        downstream_plant_id (str, optional): Plant that receives this plant's release.
        water_travel_time_hours (float): Hours for released water to reach the
            downstream plant. Ignored when there is no downstream plant.
    """
    id: str
    name: str
    submarket_id: str
    max_volume_hm3: float
    min_volume_hm3: float
    initial_volume_hm3: float
    max_outflow_m3_per_s: float
    min_outflow_m3_per_s: float
    max_generation_mw: float
    min_generation_mw: float
    efficiency: float
    water_value_per_hm3: float
    must_run: bool = False
    downstream_plant_id: Optional[str] = None
    water_travel_time_hours: float = 0.0

    kind = PlantKind.RESERVOIR

    def __post_init__(self):
        _check_text(self.id, "id")
        _check_text(self.name, "name")
        _check_text(self.submarket_id, "submarket_id")
        _check_volume_range(self.min_volume_hm3, self.max_volume_hm3, self.initial_volume_hm3)
        _check_strictly_positive(self.max_outflow_m3_per_s, "max_outflow_m3_per_s")
        _check_non_negative(self.min_outflow_m3_per_s, "min_outflow_m3_per_s")
        _check_min_leq_max(self.min_outflow_m3_per_s, self.max_outflow_m3_per_s, "min_outflow_m3_per_s", "max_outflow_m3_per_s")
        _check_strictly_positive(self.max_generation_mw, "max_generation_mw")
        _check_non_negative(self.min_generation_mw, "min_generation_mw")
        _check_min_leq_max(self.min_generation_mw, self.max_generation_mw, "min_generation_mw", "max_generation_mw")
        _check_fraction(self.efficiency, "efficiency")
        _check_non_negative(self.water_value_per_hm3, "water_value_per_hm3")
        _check_cascade_fields(self.downstream_plant_id, self.water_travel_time_hours)

    @property
    def cascade_link(self) -> Optional[Tuple[str, float]]:
        if self.downstream_plant_id is None:
            return None
        return self.downstream_plant_id, self.water_travel_time_hours


@dataclass(frozen=True)
class RunOfRiverHydro:
    """
    Hydroelectric plant without meaningful storage; turbines what flows in.

    Attributes:
        id (str): Unique plant identifier.
        name (str): Human-readable plant name.
        submarket_id (str): Submarket the plant belongs to.
        max_flow_m3_per_s (float): Maximum usable flow (m3/s).
        min_flow_m3_per_s (float): Minimum flow (m3/s).
        max_generation_mw (float): Maximum generation (MW).
        min_generation_mw (float): Minimum generation (MW).
        efficiency (float): Generation efficiency in [0, 1].
        must_run (bool): Plant must run when water is available.
        downstream_plant_id (str, optional): Plant that receives this plant's release.
        water_travel_time_hours (float): Hours for released water to reach the
            downstream plant.
    """
    id: str
    name: str
    submarket_id: str
    max_flow_m3_per_s: float
    min_flow_m3_per_s: float
    max_generation_mw: float
    min_generation_mw: float
    efficiency: float
    must_run: bool = False
    downstream_plant_id: Optional[str] = None
    water_travel_time_hours: float = 0.0

    kind = PlantKind.RUN_OF_RIVER

    def __post_init__(self):
        _check_text(self.id, "id")
        _check_text(self.name, "name")
        _check_text(self.submarket_id, "submarket_id")
        _check_strictly_positive(self.max_flow_m3_per_s, "max_flow_m3_per_s")
        _check_non_negative(self.min_flow_m3_per_s, "min_flow_m3_per_s")
        _check_min_leq_max(self.min_flow_m3_per_s, self.max_flow_m3_per_s, "min_flow_m3_per_s", "max_flow_m3_per_s")
        _check_strictly_positive(self.max_generation_mw, "max_generation_mw")
        _check_non_negative(self.min_generation_mw, "min_generation_mw")
        _check_min_leq_max(self.min_generation_mw, self.max_generation_mw, "min_generation_mw", "max_generation_mw")
        _check_fraction(self.efficiency, "efficiency")
        _check_cascade_fields(self.downstream_plant_id, self.water_travel_time_hours)

    @property
    def cascade_link(self) -> Optional[Tuple[str, float]]:
        if self.downstream_plant_id is None:
            return None
        return self.downstream_plant_id, self.water_travel_time_hours


@dataclass(frozen=True)
class PumpedStorageHydro:
    """
    Pumped storage plant operating between an upper and a lower reservoir.

    Water moves only between its own two reservoirs, so the plant has no
    downstream reference and is always a cascade terminal.

    Attributes:
        id (str): Unique plant identifier.
        name (str): Human-readable plant name.
        submarket_id (str): Submarket the plant belongs to.
        upper_max_volume_hm3, upper_min_volume_hm3, upper_initial_volume_hm3 (float):
            Upper reservoir volumes (hm3).
        lower_max_volume_hm3, lower_min_volume_hm3, lower_initial_volume_hm3 (float):
            Lower reservoir volumes (hm3).
        max_generation_mw (float): Generation capacity (MW).
        max_pumping_mw (float): Pumping capacity (MW).
        generation_efficiency (float): Generation efficiency in [0, 1].
        pumping_efficiency (float): Share of pumped water that reaches the upper reservoir.
        min_generation_mw (float): Minimum generation (MW).
        must_run (bool): Plant must run when economically favorable.
    """
    id: str
    name: str
    submarket_id: str
    upper_max_volume_hm3: float
    upper_min_volume_hm3: float
    upper_initial_volume_hm3: float
    lower_max_volume_hm3: float
    lower_min_volume_hm3: float
    lower_initial_volume_hm3: float
    max_generation_mw: float
    max_pumping_mw: float
    generation_efficiency: float
    pumping_efficiency: float
    min_generation_mw: float = 0.0
    must_run: bool = False

    kind = PlantKind.PUMPED_STORAGE

    def __post_init__(self):
        _check_text(self.id, "id")
        _check_text(self.name, "name")
        _check_text(self.submarket_id, "submarket_id")
        _check_volume_range(self.upper_min_volume_hm3, self.upper_max_volume_hm3, self.upper_initial_volume_hm3, prefix="upper_")
        _check_volume_range(self.lower_min_volume_hm3, self.lower_max_volume_hm3, self.lower_initial_volume_hm3, prefix="lower_")
        _check_strictly_positive(self.max_generation_mw, "max_generation_mw")
        _check_strictly_positive(self.max_pumping_mw, "max_pumping_mw")
        _check_non_negative(self.min_generation_mw, "min_generation_mw")
        _check_min_leq_max(self.min_generation_mw, self.max_generation_mw, "min_generation_mw", "max_generation_mw")
        _check_fraction(self.generation_efficiency, "generation_efficiency")
        _check_fraction(self.pumping_efficiency, "pumping_efficiency")

    @property
    def cascade_link(self) -> Optional[Tuple[str, float]]:
        return None


HydroPlant = Union[ReservoirHydro, RunOfRiverHydro, PumpedStorageHydro]


def check_unique_plant_ids(plants: Iterable[HydroPlant]):
    """
    Verifies that no two plants share an identifier.

    The cascade topology assumes unique ids; this check belongs to whoever
    assembles the plant list (data loading or model initialization).

    Args:
        plants (Iterable[HydroPlant]): Plant records to check.

    Raises:
        ValueError: If an identifier appears more than once.
    """
    seen = set()
    duplicates = []
    for plant in plants:
        if plant.id in seen and plant.id not in duplicates:
            duplicates.append(plant.id)
        seen.add(plant.id)
    if duplicates:
        raise ValueError(f"Duplicate hydro plant ids: {duplicates}")
