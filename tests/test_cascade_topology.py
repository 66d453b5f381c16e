import dataclasses
import logging
import random

import pytest

from hydrocascade import (
    CascadeDiagnostics,
    CircularCascadeError,
    build_cascade_topology,
    find_cascade_cycle,
    find_headwaters,
    find_terminal_plants,
    get_upstream_plants,
    try_build_cascade_topology,
)

from utils_tests import make_reservoir, make_run_of_river, make_pumped_storage, make_chain, check_topology_invariants


def test_empty_plant_list():
    topology = build_cascade_topology([])

    assert len(topology) == 0
    assert dict(topology.upstream_map) == {}
    assert dict(topology.depths) == {}
    assert topology.topological_order == ()
    assert find_headwaters(topology) == []
    assert find_terminal_plants(topology) == []


def test_isolated_plant_is_headwater_and_terminal():
    topology = build_cascade_topology([make_reservoir("H001")])

    assert topology.depths["H001"] == 0
    assert find_headwaters(topology) == ["H001"]
    assert find_terminal_plants(topology) == ["H001"]
    assert topology.topological_order == ("H001",)
    assert get_upstream_plants(topology, "H001") == []


def test_linear_chain():
    plants = [
        make_reservoir("A", "B", 2.0),
        make_reservoir("B", "C", 2.0),
        make_reservoir("C"),
    ]
    topology = build_cascade_topology(plants)

    assert find_headwaters(topology) == ["A"]
    assert find_terminal_plants(topology) == ["C"]
    assert dict(topology.depths) == {"A": 0, "B": 1, "C": 2}
    assert list(topology.topological_order) == ["A", "B", "C"]
    assert get_upstream_plants(topology, "B") == [("A", 2.0)]
    assert get_upstream_plants(topology, "C") == [("B", 2.0)]
    assert topology.downstream_of("A") == "B"
    assert topology.downstream_of("C") is None


def test_linear_chain_listed_downstream_first():
    plants = [
        make_reservoir("C"),
        make_reservoir("B", "C", 3.0),
        make_reservoir("A", "B", 2.0),
    ]
    topology = build_cascade_topology(plants)

    assert list(topology.topological_order) == ["A", "B", "C"]
    check_topology_invariants(topology, plants)


def test_diamond_confluence():
    plants = [
        make_reservoir("A", "C", 1.0),
        make_reservoir("B", "C", 1.0),
        make_reservoir("C"),
    ]
    topology = build_cascade_topology(plants)

    assert topology.depths["C"] == 1
    assert sorted(get_upstream_plants(topology, "C")) == [("A", 1.0), ("B", 1.0)]
    order = list(topology.topological_order)
    assert order.index("A") < order.index("C")
    assert order.index("B") < order.index("C")
    assert sorted(find_headwaters(topology)) == ["A", "B"]
    assert find_terminal_plants(topology) == ["C"]


def test_confluence_with_different_depths():
    plants = [
        make_reservoir("H001", "H002", 1.0),
        make_reservoir("H002", "H004", 2.0),
        make_reservoir("H003", "H004", 1.0),
        make_reservoir("H004"),
    ]
    topology = build_cascade_topology(plants)

    assert topology.depths["H001"] == 0
    assert topology.depths["H002"] == 1
    assert topology.depths["H003"] == 0
    assert topology.depths["H004"] == 2
    assert find_terminal_plants(topology) == ["H004"]
    check_topology_invariants(topology, plants)


def test_uneven_confluence_takes_longest_branch():
    # The short branch reaches T long before the long branch does.
    plants = [
        make_reservoir("A", "X1", 1.0),
        make_reservoir("C", "T", 1.0),
        make_reservoir("X1", "X2", 1.0),
        make_reservoir("X2", "X3", 1.0),
        make_reservoir("X3", "T", 1.0),
        make_reservoir("T", "OUT", 1.0),
        make_reservoir("OUT"),
    ]
    topology = build_cascade_topology(plants)

    assert topology.depths["T"] == 4
    assert topology.depths["OUT"] == 5
    order = list(topology.topological_order)
    assert order.index("X3") < order.index("T") < order.index("OUT")
    check_topology_invariants(topology, plants)


def test_two_independent_cascades():
    plants = [
        make_reservoir("H001", "H002", 1.0),
        make_reservoir("H002"),
        make_reservoir("H003", "H004", 2.0),
        make_reservoir("H004"),
    ]
    topology = build_cascade_topology(plants)

    assert find_headwaters(topology) == ["H001", "H003"]
    assert find_terminal_plants(topology) == ["H002", "H004"]
    assert dict(topology.depths) == {"H001": 0, "H002": 1, "H003": 0, "H004": 1}


def test_mixed_plant_kinds():
    plants = [
        make_run_of_river("R001", "H001", 4.0),
        make_reservoir("H001", "R002", 1.0),
        make_run_of_river("R002"),
        make_pumped_storage("PS001"),
    ]
    topology = build_cascade_topology(plants)

    assert list(topology.topological_order) == ["R001", "PS001", "H001", "R002"]
    assert get_upstream_plants(topology, "H001") == [("R001", 4.0)]
    assert "PS001" in find_headwaters(topology)
    assert "PS001" in find_terminal_plants(topology)
    assert topology.depths["R002"] == 2
    check_topology_invariants(topology, plants)


def test_travel_time_without_downstream_is_ignored():
    topology = build_cascade_topology([make_reservoir("H001", None, 6.0)])

    assert find_terminal_plants(topology) == ["H001"]
    assert get_upstream_plants(topology, "H001") == []


def test_get_upstream_plants_unknown_id_returns_empty():
    topology = build_cascade_topology(make_chain(["A", "B"]))

    assert get_upstream_plants(topology, "NOT_A_PLANT") == []
    assert "NOT_A_PLANT" not in topology
    assert "A" in topology


def test_unknown_downstream_is_terminal_with_warning(caplog):
    diagnostics = CascadeDiagnostics()
    with caplog.at_level(logging.WARNING):
        topology = build_cascade_topology([make_reservoir("H001", "H999", 1.0)], diagnostics=diagnostics)

    assert topology.depths["H001"] == 0
    assert find_headwaters(topology) == ["H001"]
    assert find_terminal_plants(topology) == ["H001"]
    assert any("Unknown downstream reference" in record.getMessage() for record in caplog.records)
    assert len(diagnostics.unresolved_references) == 1
    assert diagnostics.unresolved_references[0].plant_id == "H001"
    assert diagnostics.unresolved_references[0].downstream_plant_id == "H999"


def test_mixed_valid_and_unknown_downstream():
    diagnostics = CascadeDiagnostics()
    plants = [
        make_reservoir("H001", "H002", 1.0),
        make_reservoir("H002", "H999", 1.0),
        make_reservoir("H003"),
    ]
    topology = build_cascade_topology(plants, diagnostics=diagnostics)

    assert dict(topology.depths) == {"H001": 0, "H002": 1, "H003": 0}
    assert "H002" in find_terminal_plants(topology)
    assert any("H999" in message for message in diagnostics.messages)
    check_topology_invariants(topology, plants)


def test_self_loop_is_rejected():
    with pytest.raises(CircularCascadeError) as exc_info:
        build_cascade_topology([make_reservoir("A", "A", 1.0)])

    assert exc_info.value.cycle_path == ["A", "A"]
    assert "A → A" in str(exc_info.value)


def test_direct_cycle_is_rejected():
    plants = [make_reservoir("A", "B", 1.0), make_reservoir("B", "A", 1.0)]

    with pytest.raises(CircularCascadeError) as exc_info:
        build_cascade_topology(plants)

    cycle_path = exc_info.value.cycle_path
    assert cycle_path[0] == cycle_path[-1]
    assert sorted(cycle_path[:-1]) == ["A", "B"]
    assert str(exc_info.value) == "Circular cascade detected: A → B → A"


def test_three_plant_cycle_reports_full_path():
    plants = [
        make_reservoir("A", "B", 1.0),
        make_reservoir("B", "C", 1.0),
        make_reservoir("C", "A", 1.0),
    ]

    with pytest.raises(CircularCascadeError) as exc_info:
        build_cascade_topology(plants)

    assert exc_info.value.cycle_path == ["A", "B", "C", "A"]


def test_cycle_path_excludes_plants_leading_into_it():
    plants = [
        make_reservoir("T", "A", 1.0),
        make_reservoir("A", "B", 1.0),
        make_reservoir("B", "A", 1.0),
    ]

    with pytest.raises(CircularCascadeError) as exc_info:
        build_cascade_topology(plants)

    assert exc_info.value.cycle_path == ["A", "B", "A"]


def test_cycle_without_headwater_is_detected():
    # Every plant of the cycle has an upstream plant, so no headwater leads to it.
    plants = [
        make_reservoir("H001"),
        make_reservoir("A", "B", 1.0),
        make_reservoir("B", "C", 1.0),
        make_reservoir("C", "A", 1.0),
    ]

    result = try_build_cascade_topology(plants)

    assert not result.is_valid
    assert result.topology is None
    assert set(result.cycle_path) == {"A", "B", "C"}
    assert len(result.cycle_path) == 4
    with pytest.raises(CircularCascadeError):
        result.unwrap()


def test_try_build_success_returns_topology():
    result = try_build_cascade_topology(make_chain(["A", "B", "C"]))

    assert result.is_valid
    assert result.cycle_path is None
    assert result.unwrap() is result.topology
    assert not result.diagnostics.has_warnings


def test_circular_cascade_error_is_value_error():
    with pytest.raises(ValueError):
        build_cascade_topology([make_reservoir("A", "A", 0.0)])


def test_find_cascade_cycle_on_plain_mapping():
    assert find_cascade_cycle({"A": "B", "B": "C"}, ["A", "B", "C"]) is None
    assert find_cascade_cycle({"A": "B", "B": "A"}, ["A", "B"]) == ["A", "B", "A"]
    assert find_cascade_cycle({"X": "X"}, ["X"]) == ["X", "X"]


def test_topology_is_immutable():
    topology = build_cascade_topology(make_chain(["A", "B"]))

    with pytest.raises(dataclasses.FrozenInstanceError):
        topology.depths = {}
    with pytest.raises(TypeError):
        topology.depths["A"] = 5
    with pytest.raises(TypeError):
        topology.upstream_map["B"] = ()

    upstream = get_upstream_plants(topology, "B")
    upstream.append(("Z", 0.0))
    assert get_upstream_plants(topology, "B") == [("A", 1.0)]


def test_long_chain_does_not_hit_recursion_limit():
    ids = [f"H{i:05d}" for i in range(5000)]
    topology = build_cascade_topology(make_chain(ids))

    assert topology.depths[ids[-1]] == 4999
    assert list(topology.topological_order) == ids


def test_long_cycle_is_detected():
    ids = [f"H{i:05d}" for i in range(3000)]
    plants = make_chain(ids)
    plants[-1] = make_reservoir(ids[-1], ids[0], 1.0)

    with pytest.raises(CircularCascadeError) as exc_info:
        build_cascade_topology(plants)

    assert len(exc_info.value.cycle_path) == 3001


def test_random_river_basins_satisfy_invariants():
    rng = random.Random(42)
    for _ in range(20):
        n_plants = rng.randint(1, 60)
        ids = [f"P{i:03d}" for i in range(n_plants)]
        plants = []
        for i, plant_id in enumerate(ids):
            roll = rng.random()
            if roll < 0.15 or i == n_plants - 1:
                plants.append(make_reservoir(plant_id))
            elif roll < 0.25:
                plants.append(make_reservoir(plant_id, "MISSING", 1.0))
            else:
                downstream = ids[rng.randint(i + 1, n_plants - 1)]
                plants.append(make_reservoir(plant_id, downstream, float(rng.randint(0, 12))))
        rng.shuffle(plants)

        topology = build_cascade_topology(plants)

        check_topology_invariants(topology, plants)
