"""Entry point for hydrocascade."""

from .common.cascade_topology import (
    CascadeTopology,
    CircularCascadeError,
    TopologyBuildResult,
    build_cascade_topology,
    find_cascade_cycle,
    find_headwaters,
    find_terminal_plants,
    format_cycle_path,
    get_upstream_plants,
    try_build_cascade_topology,
)
from .common.diagnostics import CascadeDiagnostics, UnresolvedReference
from .config_hydrocascade import configure_logging
from .hydro_plants import (
    HydroPlant,
    PlantKind,
    PumpedStorageHydro,
    ReservoirHydro,
    RunOfRiverHydro,
    check_unique_plant_ids,
)
from .io_manager import get_inflow_dict, plants_from_dataframe, topology_to_dataframe
from .optimization_main import get_default_water_balance_config_dict, initialize_model

__all__ = [
    "build_cascade_topology",
    "CascadeDiagnostics",
    "CascadeTopology",
    "check_unique_plant_ids",
    "CircularCascadeError",
    "configure_logging",
    "find_cascade_cycle",
    "find_headwaters",
    "find_terminal_plants",
    "format_cycle_path",
    "get_default_water_balance_config_dict",
    "get_inflow_dict",
    "get_upstream_plants",
    "HydroPlant",
    "initialize_model",
    "PlantKind",
    "plants_from_dataframe",
    "PumpedStorageHydro",
    "ReservoirHydro",
    "RunOfRiverHydro",
    "topology_to_dataframe",
    "TopologyBuildResult",
    "try_build_cascade_topology",
    "UnresolvedReference",
]
