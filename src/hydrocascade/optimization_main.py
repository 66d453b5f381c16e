import copy
import logging

from pyomo.environ import ConcreteModel, Objective, Block, minimize

from .common.cascade_topology import build_cascade_topology
from .common.diagnostics import CascadeDiagnostics
from .constants import DEFAULT_WATER_BALANCE_CONFIG
from .hydro_plants import check_unique_plant_ids
from .initializations import initialize_sets, initialize_params
from .models.formulations_hydro import (add_hydro_variables, add_water_balance_constraints,
                                        add_volume_limit_constraints, add_outflow_limit_constraints,
                                        objective_rule)


def get_default_water_balance_config_dict(include_cascade=True, include_spill=True):
    """
    Returns a default water balance configuration dictionary.

    Args:
        include_cascade (bool, optional): Add delayed upstream releases to each
            plant's balance. Defaults to True.
        include_spill (bool, optional): Model spillage. Defaults to True.

    Returns:
        dict: Configuration with keys:
            - 'include_cascade' (bool)
            - 'include_spill' (bool)
            - 'plant_ids' (list): Plants to constrain; empty means all plants
            - 'time_step_hours' (float): Length of one time step in hours
            - 'spill_penalty' (float): Objective weight of spillage

    Examples:
        >>> config = get_default_water_balance_config_dict()
        >>> config['plant_ids'] = ['H001', 'H002']
        >>> model = initialize_model(plants, inflow_data, water_balance_config=config)
    """
    config = copy.deepcopy(DEFAULT_WATER_BALANCE_CONFIG)
    config["include_cascade"] = include_cascade
    config["include_spill"] = include_spill
    return config


def initialize_model(plants, inflow_data=None, n_hours=24, water_balance_config=None, model_name="Hydro_Cascade_Model", diagnostics=None):
    """
    Builds a Pyomo water-balance model for a set of cascaded hydro plants.

    The cascade topology is built first, so a circular cascade aborts model
    construction before any Pyomo component is created. Plants are then
    processed in the topology's upstream-first order, and each plant's balance
    receives the releases of its upstream plants shifted by their travel time.

    Args:
        plants (list): Hydro plant records (ReservoirHydro, RunOfRiverHydro,
            PumpedStorageHydro) with unique ids.
        inflow_data (pd.DataFrame, optional): Hourly natural inflows (m3/s) with a
            '*Hour' column and one column per plant id. Defaults to None (zero inflows).
        n_hours (int, optional): Number of time steps. Defaults to 24.
        water_balance_config (dict, optional): Options from
            get_default_water_balance_config_dict(). Defaults to None (defaults).
        model_name (str, optional): Name of the ConcreteModel.
        diagnostics (CascadeDiagnostics, optional): Collector for topology build
            warnings. Defaults to None (a new collector).

    Returns:
        ConcreteModel: Model with ``model.h``, a ``model.hydro`` block holding the
            sets, parameters, variables and constraints, ``model.Obj`` and the
            topology in ``model.cascade_topology``.

    Raises:
        CircularCascadeError: If plant downstream references form a cycle.
        ValueError: If plant ids are duplicated.

    Examples:
        >>> model = initialize_model(plants, inflow_data, n_hours=168)
        >>> list(model.hydro.plants_set)  # headwaters first
    """
    if water_balance_config is None:
        water_balance_config = get_default_water_balance_config_dict()
    if diagnostics is None:
        diagnostics = CascadeDiagnostics()

    plants = list(plants)
    check_unique_plant_ids(plants)

    logging.info("Building hydro cascade topology...")
    topology = build_cascade_topology(plants, diagnostics=diagnostics)
    if diagnostics.has_warnings:
        logging.info(f"Cascade topology built with {len(diagnostics.messages)} warnings.")

    logging.info("Instantiating hydro cascade Pyomo optimization model...")
    model = ConcreteModel(name=model_name)
    model.hydro = Block()
    model.cascade_topology = topology

    logging.info("Initializing model sets...")
    initialize_sets(model, plants, topology, water_balance_config, n_hours=n_hours)

    logging.info("Initializing model parameters...")
    initialize_params(model, plants, inflow_data, water_balance_config)

    logging.info("Adding variables to the model...")
    add_hydro_variables(model, water_balance_config)

    logging.info("Adding objective function to the model...")
    model.Obj = Objective(rule=objective_rule, sense=minimize)

    logging.info("Adding constraints to the model...")
    logging.debug("-- Adding hydro water balance constraints...")
    add_water_balance_constraints(model, topology, water_balance_config)

    logging.debug("-- Adding hydro volume limit constraints...")
    add_volume_limit_constraints(model)

    logging.debug("-- Adding hydro outflow limit constraints...")
    add_outflow_limit_constraints(model)

    return model
