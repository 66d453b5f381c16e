import logging

from pyomo.environ import Param, Set, RangeSet

from .constants import M3S_TO_HM3_PER_HOUR
from .hydro_plants import PlantKind
from .io_manager import get_inflow_dict


def get_ordered_plant_ids(topology, plants, kind=None):
    """
    Returns plant ids in the topology's upstream-first order, optionally of one kind.

    Args:
        topology (CascadeTopology): Topology built from ``plants``.
        plants (list): Plant records.
        kind (PlantKind, optional): If given, keep only plants of this kind.

    Returns:
        list: Plant ids ordered from headwaters to terminals.
    """
    kind_by_id = {plant.id: plant.kind for plant in plants}
    return [plant_id for plant_id in topology.topological_order if kind is None or kind_by_id[plant_id] == kind]


def initialize_sets( model, plants, topology, water_balance_config: dict, n_hours = 24 ):
    """
    Initializes the time horizon and the hydro plant sets.

    All plant sets follow the cascade topological order so that constraints are
    generated upstream-first. Variables are created for every plant, while
    ``constrained_set`` restricts which plants get balance constraints.

    Args:
        model: The Pyomo ConcreteModel instance with a ``hydro`` Block.
        plants (list): Hydro plant records.
        topology (CascadeTopology): Topology built from ``plants``.
        water_balance_config (dict): Water balance options (see
            get_default_water_balance_config_dict).
        n_hours (int, optional): Number of time steps. Defaults to 24.

    Side Effects:
        - Creates model.h: RangeSet(1, n_hours)
        - Creates model.hydro.plants_set, reservoir_set, run_of_river_set,
          pumped_storage_set, storage_set (reservoir + pumped storage),
          release_set (reservoir + run-of-river) and constrained_set
    """
    model.h = RangeSet(1, n_hours)

    block = model.hydro
    block.plants_set = Set( initialize = get_ordered_plant_ids(topology, plants) )
    block.reservoir_set = Set( initialize = get_ordered_plant_ids(topology, plants, PlantKind.RESERVOIR) )
    block.run_of_river_set = Set( initialize = get_ordered_plant_ids(topology, plants, PlantKind.RUN_OF_RIVER) )
    block.pumped_storage_set = Set( initialize = get_ordered_plant_ids(topology, plants, PlantKind.PUMPED_STORAGE) )
    block.storage_set = Set( initialize = [plant_id for plant_id in block.plants_set
                                           if plant_id in block.reservoir_set or plant_id in block.pumped_storage_set] )
    block.release_set = Set( initialize = [plant_id for plant_id in block.plants_set
                                           if plant_id in block.reservoir_set or plant_id in block.run_of_river_set] )

    selected_ids = set(water_balance_config["plant_ids"])
    unknown_ids = selected_ids - set(block.plants_set)
    if unknown_ids:
        logging.warning(f"Selected plant ids not found among hydro plants and ignored: {sorted(unknown_ids)}")
    constrained = [plant_id for plant_id in block.plants_set if not selected_ids or plant_id in selected_ids]
    block.constrained_set = Set( initialize = constrained )

    logging.info(f"Hydro plants being considered: {len(block.plants_set)} "
                 f"({len(block.reservoir_set)} reservoir, {len(block.run_of_river_set)} run-of-river, "
                 f"{len(block.pumped_storage_set)} pumped storage)")


def initialize_params( model, plants, inflow_data, water_balance_config: dict ):
    """
    Initializes hydro parameters from the plant records and the inflow table.

    Args:
        model: The Pyomo ConcreteModel instance with initialized sets.
        plants (list): Hydro plant records.
        inflow_data (pd.DataFrame or None): Hourly natural inflows (m3/s), one
            column per plant id plus '*Hour'. None means zero inflows.
        water_balance_config (dict): Water balance options.

    Side Effects:
        Adds to model.hydro block:
        - inflow[p,h] (m3/s)
        - initial_volume, min_volume, max_volume (hm3) for storage plants
        - min_outflow, max_outflow (m3/s) for reservoir and run-of-river plants
        - water_value for reservoir plants, pumping_efficiency for pumped storage
        - conversion (hm3 per m3/s per time step), spill_penalty
    """
    block = model.hydro
    plants_by_id = {plant.id: plant for plant in plants}

    logging.debug("--Initializing hydro inflow parameters...")
    inflows = get_inflow_dict(inflow_data, list(block.plants_set), model.h)
    block.inflow = Param( block.plants_set, model.h, initialize = inflows, default = 0.0 )

    logging.debug("--Initializing hydro storage parameters...")
    initial_volume, min_volume, max_volume = {}, {}, {}
    for plant_id in block.storage_set:
        plant = plants_by_id[plant_id]
        if plant.kind == PlantKind.PUMPED_STORAGE:
            initial_volume[plant_id] = plant.upper_initial_volume_hm3
            min_volume[plant_id] = plant.upper_min_volume_hm3
            max_volume[plant_id] = plant.upper_max_volume_hm3
        else:
            initial_volume[plant_id] = plant.initial_volume_hm3
            min_volume[plant_id] = plant.min_volume_hm3
            max_volume[plant_id] = plant.max_volume_hm3
    block.initial_volume = Param( block.storage_set, initialize = initial_volume )
    block.min_volume = Param( block.storage_set, initialize = min_volume )
    block.max_volume = Param( block.storage_set, initialize = max_volume )

    logging.debug("--Initializing hydro outflow parameters...")
    min_outflow, max_outflow = {}, {}
    for plant_id in block.reservoir_set:
        min_outflow[plant_id] = plants_by_id[plant_id].min_outflow_m3_per_s
        max_outflow[plant_id] = plants_by_id[plant_id].max_outflow_m3_per_s
    for plant_id in block.run_of_river_set:
        min_outflow[plant_id] = plants_by_id[plant_id].min_flow_m3_per_s
        max_outflow[plant_id] = plants_by_id[plant_id].max_flow_m3_per_s
    block.min_outflow = Param( block.release_set, initialize = min_outflow )
    block.max_outflow = Param( block.release_set, initialize = max_outflow )

    block.water_value = Param( block.reservoir_set, initialize = {p: plants_by_id[p].water_value_per_hm3 for p in block.reservoir_set} )
    block.pumping_efficiency = Param( block.pumped_storage_set, initialize = {p: plants_by_id[p].pumping_efficiency for p in block.pumped_storage_set} )

    block.conversion = Param( initialize = M3S_TO_HM3_PER_HOUR * float(water_balance_config["time_step_hours"]) )
    block.spill_penalty = Param( initialize = float(water_balance_config["spill_penalty"]), mutable = True )
