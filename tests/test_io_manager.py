import math

import pandas as pd
import pytest

from hydrocascade import (
    PlantKind,
    build_cascade_topology,
    get_inflow_dict,
    plants_from_dataframe,
    topology_to_dataframe,
)

from utils_tests import make_chain, make_pumped_storage, make_reservoir

NAN = float('nan')


def get_plants_df():
    return pd.DataFrame({
        "Kind": ["Reservoir", "run-of-river", "PumpedStorage"],
        "id": ["H001", "R001", "PS001"],
        "name": ["Upper Dam", "Lower Weir", "Hill Pump"],
        "submarket_id": ["SE", "SE", "NE"],
        "max_volume_hm3": [10000.0, NAN, NAN],
        "min_volume_hm3": [1000.0, NAN, NAN],
        "initial_volume_hm3": [5000.0, NAN, NAN],
        "max_outflow_m3_per_s": [5000.0, NAN, NAN],
        "min_outflow_m3_per_s": [0.0, NAN, NAN],
        "max_flow_m3_per_s": [NAN, 2000.0, NAN],
        "min_flow_m3_per_s": [NAN, 10.0, NAN],
        "max_generation_mw": [1000.0, 300.0, 500.0],
        "min_generation_mw": [NAN, 0.0, NAN],
        "efficiency": [0.9, 0.88, NAN],
        "water_value_per_hm3": [50.0, NAN, NAN],
        "must_run": [NAN, "True", NAN],
        "downstream_plant_id": ["R001", NAN, NAN],
        "water_travel_time_hours": [3.0, NAN, NAN],
        "upper_max_volume_hm3": [NAN, NAN, 500.0],
        "upper_min_volume_hm3": [NAN, NAN, 50.0],
        "upper_initial_volume_hm3": [NAN, NAN, 300.0],
        "lower_max_volume_hm3": [NAN, NAN, 1000.0],
        "lower_min_volume_hm3": [NAN, NAN, 100.0],
        "lower_initial_volume_hm3": [NAN, NAN, 800.0],
        "max_pumping_mw": [NAN, NAN, 400.0],
        "generation_efficiency": [NAN, NAN, 0.85],
        "pumping_efficiency": [NAN, NAN, 0.87],
    })


def test_plants_from_dataframe_builds_each_kind():
    plants = plants_from_dataframe(get_plants_df())

    assert [plant.kind for plant in plants] == [PlantKind.RESERVOIR, PlantKind.RUN_OF_RIVER, PlantKind.PUMPED_STORAGE]
    reservoir, run_of_river, pumped_storage = plants
    assert reservoir.cascade_link == ("R001", 3.0)
    assert reservoir.min_generation_mw == 0.0
    assert reservoir.must_run is False
    assert run_of_river.cascade_link is None
    assert run_of_river.must_run is True
    assert run_of_river.water_travel_time_hours == 0.0
    assert pumped_storage.upper_initial_volume_hm3 == 300.0


def test_plants_from_dataframe_feeds_topology():
    topology = build_cascade_topology(plants_from_dataframe(get_plants_df()))

    assert topology.depths["R001"] == 1
    assert "PS001" in topology.terminals


def test_plants_from_dataframe_requires_kind_column():
    with pytest.raises(ValueError, match="Kind"):
        plants_from_dataframe(get_plants_df().drop(columns=["Kind"]))


def test_plants_from_dataframe_rejects_invalid_kind():
    plants_df = get_plants_df()
    plants_df.loc[0, "Kind"] = "Thermal"

    with pytest.raises(ValueError, match="Invalid hydro plant kind"):
        plants_from_dataframe(plants_df)


def test_plants_from_dataframe_rejects_missing_required_field():
    with pytest.raises(ValueError, match="missing required fields"):
        plants_from_dataframe(get_plants_df().drop(columns=["max_volume_hm3"]))


def test_plants_from_dataframe_rejects_duplicate_ids():
    plants_df = get_plants_df()
    plants_df.loc[1, "id"] = "H001"

    with pytest.raises(ValueError, match="Duplicate"):
        plants_from_dataframe(plants_df)


def test_topology_to_dataframe():
    topology = build_cascade_topology([
        make_reservoir("A", "C", 2.0),
        make_reservoir("B", "C", 1.5),
        make_reservoir("C"),
        make_pumped_storage("PS"),
    ])

    df = topology_to_dataframe(topology)

    assert df["plant_id"].tolist() == list(topology.topological_order)
    assert df["order"].tolist() == list(range(4))
    row_c = df.set_index("plant_id").loc["C"]
    assert row_c["depth"] == 1
    assert row_c["n_upstream"] == 2
    assert row_c["upstream"] == "A(2.0h), B(1.5h)"
    assert bool(row_c["is_terminal"]) and not bool(row_c["is_headwater"])
    assert df.set_index("plant_id").loc["A", "downstream_plant_id"] == "C"


def test_topology_to_dataframe_empty():
    df = topology_to_dataframe(build_cascade_topology([]))

    assert df.empty
    assert "depth" in df.columns


def test_get_inflow_dict_without_data_is_zero():
    inflows = get_inflow_dict(None, ["H001", "H002"], range(1, 4))

    assert len(inflows) == 6
    assert all(value == 0.0 for value in inflows.values())


def test_get_inflow_dict_fills_missing_plants_and_hours():
    inflow_df = pd.DataFrame({"*Hour": [1, 2], "H001": [120.0, NAN]})

    inflows = get_inflow_dict(inflow_df, ["H001", "H002"], [1, 2, 3])

    assert inflows[("H001", 1)] == 120.0
    assert inflows[("H001", 2)] == 0.0
    assert inflows[("H001", 3)] == 0.0
    assert inflows[("H002", 1)] == 0.0
    assert not any(math.isnan(value) for value in inflows.values())


def test_chain_round_trips_through_report():
    ids = ["A", "B", "C", "D"]
    df = topology_to_dataframe(build_cascade_topology(make_chain(ids, delay=2.0)))

    assert df["depth"].tolist() == [0, 1, 2, 3]
    assert df["is_headwater"].tolist() == [True, False, False, False]
