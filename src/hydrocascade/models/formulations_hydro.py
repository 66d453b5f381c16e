"""Hydro water-balance formulations for cascaded plants.

This module turns the cascade topology and the plant parameters into Pyomo
variables and constraints:
- Reservoir: storage continuity with delayed releases from upstream plants
- Run-of-River: outflow limited by natural inflow plus upstream releases
- Pumped Storage: upper reservoir continuity including pumped water

Upstream releases (turbined outflow plus spillage) reach a downstream plant
after the water travel time of the upstream plant, rounded to whole time steps.
Releases that would have left before the first time step are not modeled.
"""

from pyomo.environ import NonNegativeReals
from pyomo.core import Var, Constraint

from ..common.cascade_topology import get_upstream_plants


####################################################################################|
# ------------------------------------ Variables -----------------------------------|
####################################################################################|

def add_hydro_variables(model, water_balance_config: dict):
    """
    Adds hydro decision variables to the model.

    Args:
        model: The Pyomo ConcreteModel instance with hydro sets.
        water_balance_config (dict): Water balance options; 'include_spill'
            controls whether spillage variables are created.

    Side Effects:
        Adds to model.hydro block:
        - outflow[p,h] (Var): Turbined outflow (m3/s), all plants
        - spill[p,h] (Var): Spillage (m3/s), all plants, if include_spill
        - storage[s,h] (Var): Stored volume at the end of step h (hm3), storage plants
        - pump[s,h] (Var): Pumped flow to the upper reservoir (m3/s), pumped storage plants

    Note:
        pump has no upper bound of its own. It is not linked to max_pumping_mw
        (that needs a head model) nor drawn from the lower reservoir, so only the
        upper volume limits cap it. Leaving a pumped storage plant out of
        ``plant_ids`` removes those limits as well.
    """
    block = model.hydro
    block.outflow = Var(block.plants_set, model.h, domain=NonNegativeReals, initialize=0)
    if water_balance_config["include_spill"]:
        block.spill = Var(block.plants_set, model.h, domain=NonNegativeReals, initialize=0)
    block.storage = Var(block.storage_set, model.h, domain=NonNegativeReals, initialize=0)
    block.pump = Var(block.pumped_storage_set, model.h, domain=NonNegativeReals, initialize=0)


####################################################################################|
# ----------------------------------- Expressions ----------------------------------|
####################################################################################|

def delay_in_steps(delay_hours: float, time_step_hours: float = 1.0) -> int:
    """
    Converts a water travel time to a whole number of time steps.

    Examples:
        >>> delay_in_steps(2.4)
        2
        >>> delay_in_steps(12.0, time_step_hours=6.0)
        2
    """
    return int(round(delay_hours / time_step_hours))


def release(block, plant_id, h):
    """Water leaving a plant in step h: turbined outflow plus spillage if modeled."""
    if hasattr(block, "spill"):
        return block.outflow[plant_id, h] + block.spill[plant_id, h]
    return block.outflow[plant_id, h]


def upstream_release_expr(block, topology, plant_id, h, first_hour, time_step_hours: float = 1.0):
    """
    Sums the releases of the upstream plants that reach ``plant_id`` in step ``h``.

    Mathematical Formulation:
        $$U_{p}(h) = \\sum_{(u, d) \\in \\mathcal{U}_p,\\; h - d \\geq h_0} Q_u(h - d) + S_u(h - d)$$

    Where:
        - $\\mathcal{U}_p$: upstream plants of p with delays d (in steps)
        - $Q_u$, $S_u$: turbined outflow and spillage of u (m3/s)
        - $h_0$: first time step of the horizon

    Returns:
        Pyomo expression, or 0 if no upstream release reaches the plant in step h.
    """
    terms = []
    for upstream_id, delay_hours in get_upstream_plants(topology, plant_id):
        h_upstream = h - delay_in_steps(delay_hours, time_step_hours)
        if h_upstream >= first_hour:
            terms.append(release(block, upstream_id, h_upstream))
    return sum(terms)


####################################################################################|
# ----------------------------------- Constraints ----------------------------------|
####################################################################################|

def add_water_balance_constraints(model, topology, water_balance_config: dict):
    """
    Adds water balance constraints for every constrained hydro plant.

    Mathematical Formulation:
        Reservoir p, step h:
        $$V_p(h) = V_p(h-1) + K \\left( I_p(h) - Q_p(h) - S_p(h) + U_p(h) \\right)$$

        Run-of-river p, step h:
        $$Q_p(h) + S_p(h) \\leq I_p(h) + U_p(h)$$

        Pumped storage p, step h:
        $$V_p(h) = V_p(h-1) + K \\left( I_p(h) - Q_p(h) - S_p(h) + \\eta_p P_p(h) \\right)$$

    Where:
        - $V_p(h)$: Stored volume (hm3), $V_p(0)$ the initial volume
        - $I_p(h)$: Natural inflow (m3/s)
        - $U_p(h)$: Delayed upstream releases (m3/s), zero if include_cascade is False
        - $K$: Conversion from m3/s over one time step to hm3
        - $\\eta_p$, $P_p(h)$: Pumping efficiency and pumped flow

    Args:
        model: The Pyomo ConcreteModel instance with hydro variables and parameters.
        topology (CascadeTopology): Topology built from the model's plants.
        water_balance_config (dict): Water balance options.

    Side Effects:
        Adds to model.hydro block:
        - reservoir_balance_constraint[p,h]
        - run_of_river_constraint[p,h]
        - pumped_storage_balance_constraint[p,h]
    """
    block = model.hydro
    first_hour = model.h.first()
    include_cascade = water_balance_config["include_cascade"]
    time_step_hours = float(water_balance_config["time_step_hours"])

    def spill(m, p, h):
        return m.spill[p, h] if hasattr(m, "spill") else 0

    def upstream(m, p, h):
        if not include_cascade:
            return 0
        return upstream_release_expr(m, topology, p, h, first_hour, time_step_hours)

    def previous_volume(m, p, h):
        return m.initial_volume[p] if h == first_hour else m.storage[p, h - 1]

    def reservoir_balance_rule(m, p, h):
        if p not in m.constrained_set:
            return Constraint.Skip
        return m.storage[p, h] == previous_volume(m, p, h) + m.conversion * (
            m.inflow[p, h] - m.outflow[p, h] - spill(m, p, h) + upstream(m, p, h) )

    def run_of_river_rule(m, p, h):
        if p not in m.constrained_set:
            return Constraint.Skip
        return m.outflow[p, h] + spill(m, p, h) <= m.inflow[p, h] + upstream(m, p, h)

    def pumped_storage_balance_rule(m, p, h):
        if p not in m.constrained_set:
            return Constraint.Skip
        return m.storage[p, h] == previous_volume(m, p, h) + m.conversion * (
            m.inflow[p, h] - m.outflow[p, h] - spill(m, p, h) + m.pumping_efficiency[p] * m.pump[p, h] )

    block.reservoir_balance_constraint = Constraint(block.reservoir_set, model.h, rule=reservoir_balance_rule)
    block.run_of_river_constraint = Constraint(block.run_of_river_set, model.h, rule=run_of_river_rule)
    block.pumped_storage_balance_constraint = Constraint(block.pumped_storage_set, model.h, rule=pumped_storage_balance_rule)


def add_volume_limit_constraints(model):
    """
    Keeps stored volumes within [min_volume, max_volume] for constrained storage plants.

    Side Effects:
        Adds model.hydro.upper_volume_constraint[p,h] and model.hydro.lower_volume_constraint[p,h]
    """
    block = model.hydro
    block.upper_volume_constraint = Constraint(block.storage_set, model.h,
        rule=lambda m, p, h: m.storage[p, h] <= m.max_volume[p] if p in m.constrained_set else Constraint.Skip)
    block.lower_volume_constraint = Constraint(block.storage_set, model.h,
        rule=lambda m, p, h: m.storage[p, h] >= m.min_volume[p] if p in m.constrained_set else Constraint.Skip)


def add_outflow_limit_constraints(model):
    """
    Keeps turbined outflow within [min_outflow, max_outflow] for reservoir and run-of-river plants.

    Side Effects:
        Adds model.hydro.upper_outflow_constraint[p,h] and model.hydro.lower_outflow_constraint[p,h]
    """
    block = model.hydro
    block.upper_outflow_constraint = Constraint(block.release_set, model.h,
        rule=lambda m, p, h: m.outflow[p, h] <= m.max_outflow[p] if p in m.constrained_set else Constraint.Skip)
    block.lower_outflow_constraint = Constraint(block.release_set, model.h,
        rule=lambda m, p, h: m.outflow[p, h] >= m.min_outflow[p] if p in m.constrained_set else Constraint.Skip)


####################################################################################|
# ------------------------------------ Objective -----------------------------------|
####################################################################################|

def objective_rule(model):
    """
    Minimizes penalized spillage minus the value of water left in reservoirs.

    $$\\min \\; \\pi \\sum_{p,h} S_p(h) - \\sum_{p \\in \\mathcal{R}} w_p V_p(h_{end})$$

    Where:
        - $\\pi$: spill_penalty, $S_p(h)$: spillage of every plant (if modeled)
        - $\\mathcal{R}$: reservoir plants, $w_p$: water value per hm3
        - $V_p(h_{end})$: reservoir volume at the last time step

    Pumped storage upper reservoirs carry no water value.
    """
    block = model.hydro
    last_hour = model.h.last()
    spill_cost = 0
    if hasattr(block, "spill"):
        spill_cost = block.spill_penalty * sum(block.spill[p, h] for p in block.plants_set for h in model.h)
    stored_water_value = sum(block.water_value[p] * block.storage[p, last_hour] for p in block.reservoir_set)
    return spill_cost - stored_water_value
