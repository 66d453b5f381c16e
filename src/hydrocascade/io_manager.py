import logging
from dataclasses import fields

import pandas as pd

from .common.cascade_topology import CascadeTopology
from .common.utilities import compare_lists, normalize_string
from .constants import PLANT_COLUMNS_DEFAULTS, VALID_PLANT_KINDS
from .hydro_plants import PlantKind, ReservoirHydro, RunOfRiverHydro, PumpedStorageHydro, check_unique_plant_ids

PLANT_CLASSES_BY_KIND = {
    PlantKind.RESERVOIR: ReservoirHydro,
    PlantKind.RUN_OF_RIVER: RunOfRiverHydro,
    PlantKind.PUMPED_STORAGE: PumpedStorageHydro,
}


def check_plant_kind( kind:str, valid_kinds = VALID_PLANT_KINDS ) -> PlantKind:
    """
    Resolves a plant kind written in a data table to a PlantKind.

    The comparison ignores case, spaces, hyphens and underscores, so "run-of-river"
    and "RunOfRiver" are the same kind.

    Args:
        kind (str): The kind as written in the input table.
        valid_kinds (list, optional): Accepted kind names. Defaults to VALID_PLANT_KINDS.

    Returns:
        PlantKind: The matching plant kind.

    Raises:
        ValueError: If the kind does not match any valid kind.
    """
    normalized = normalize_string(str(kind))
    for valid_kind in valid_kinds:
        if normalize_string(valid_kind) == normalized:
            return PlantKind(valid_kind)
    raise ValueError(f"Invalid hydro plant kind '{kind}'. Valid options are: {valid_kinds}")


def _row_to_kwargs(row: pd.Series, plant_class) -> dict:
    kwargs = {}
    for plant_field in fields(plant_class):
        name = plant_field.name
        value = row.get(name, None)
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            if name in PLANT_COLUMNS_DEFAULTS:
                kwargs[name] = PLANT_COLUMNS_DEFAULTS[name]
            continue
        if name in ('id', 'name', 'submarket_id', 'downstream_plant_id'):
            kwargs[name] = str(value)
        elif name == 'must_run':
            kwargs[name] = value.strip().lower() in ('true', '1', 'yes') if isinstance(value, str) else bool(value)
        else:
            kwargs[name] = float(value)
    return kwargs


def plants_from_dataframe( plants_df: pd.DataFrame ):
    """
    Converts a table of hydro plant rows into plant records.

    The table is expected to be already loaded (e.g. with ``pd.read_csv``); this
    function only maps rows to the plant record types. Each row needs a ``Kind``
    column ("Reservoir", "RunOfRiver" or "PumpedStorage") and one column per
    record field, named as the dataclass fields (``id``, ``max_volume_hm3``,
    ``downstream_plant_id``, ...). Columns that do not apply to a row's kind are
    ignored, so a single table can hold all kinds with empty cells.

    Args:
        plants_df (pd.DataFrame): One row per hydro plant.

    Returns:
        list: Plant records in row order.

    Raises:
        ValueError: If the Kind column is missing, a kind is invalid, a required
            field is missing, a field fails validation, or ids are duplicated.

    Examples:
        >>> plants_df = pd.read_csv('./Data/hydro_plants.csv')
        >>> plants = plants_from_dataframe(plants_df)
        >>> topology = build_cascade_topology(plants)
    """
    if 'Kind' not in plants_df.columns:
        raise ValueError("Hydro plants table must have a 'Kind' column.")

    logging.debug(f"- Converting {len(plants_df)} hydro plant rows...")
    plants = []
    for row_number, (_, row) in enumerate(plants_df.iterrows()):
        kind = check_plant_kind(row['Kind'])
        plant_class = PLANT_CLASSES_BY_KIND[kind]
        kwargs = _row_to_kwargs(row, plant_class)
        try:
            plants.append(plant_class(**kwargs))
        except TypeError as e:
            raise ValueError(f"Hydro plant row {row_number} ({kind.value}) is missing required fields: {e}") from e

    check_unique_plant_ids(plants)
    logging.debug(f"-- It were loaded a total of {len(plants)} hydro plants.")
    return plants


def topology_to_dataframe( topology: CascadeTopology ) -> pd.DataFrame:
    """
    Summarizes a cascade topology as a table, one row per plant in topological order.

    Args:
        topology (CascadeTopology): The topology to summarize.

    Returns:
        pd.DataFrame: Columns 'plant_id', 'order', 'depth', 'is_headwater',
            'is_terminal', 'downstream_plant_id', 'n_upstream' and 'upstream'
            (e.g. "H001(2.0h), H002(1.5h)").

    Examples:
        >>> df = topology_to_dataframe(build_cascade_topology(plants))
        >>> df.to_csv('./results/cascade_topology.csv', index=False)
    """
    headwaters = set(topology.headwaters)
    terminals = set(topology.terminals)
    rows = []
    for order, plant_id in enumerate(topology.topological_order):
        upstream = topology.upstream_map.get(plant_id, ())
        rows.append({
            'plant_id': plant_id,
            'order': order,
            'depth': topology.depths[plant_id],
            'is_headwater': plant_id in headwaters,
            'is_terminal': plant_id in terminals,
            'downstream_plant_id': topology.downstream_of(plant_id),
            'n_upstream': len(upstream),
            'upstream': ', '.join(f"{upstream_id}({delay}h)" for upstream_id, delay in upstream),
        })
    return pd.DataFrame(rows, columns=['plant_id', 'order', 'depth', 'is_headwater', 'is_terminal',
                                       'downstream_plant_id', 'n_upstream', 'upstream'])


def get_inflow_dict( inflow_data, plant_ids, hours ) -> dict:
    """
    Extracts natural inflows per plant and hour from an hourly inflow table.

    The table has an '*Hour' column and one column per plant id with inflows in
    m3/s. Plants or hours missing from the table get zero inflow.

    Args:
        inflow_data (pd.DataFrame or None): Hourly inflow table. None means no
            inflow data, i.e. zero inflow everywhere.
        plant_ids (list): Plant ids to extract.
        hours (iterable): Hour indices to extract.

    Returns:
        dict: Mapping (plant_id, hour) -> inflow (m3/s).
    """
    hours = list(hours)
    if inflow_data is None:
        logging.debug("-- No inflow data provided, natural inflows set to zero.")
        return {(plant_id, h): 0.0 for plant_id in plant_ids for h in hours}

    inflow_by_hour = inflow_data.set_index('*Hour')
    inflow_by_hour.columns = inflow_by_hour.columns.astype(str)
    compare_lists(inflow_by_hour.columns.tolist(), list(plant_ids), text_comp="hydro plants", list_names=["Inflows", "Plants"])

    inflows = {}
    for plant_id in plant_ids:
        column = inflow_by_hour[plant_id].to_dict() if plant_id in inflow_by_hour.columns else {}
        for h in hours:
            value = column.get(h, 0.0)
            inflows[(plant_id, h)] = 0.0 if pd.isna(value) else float(value)
    return inflows
