"""Cascade topology for hydro plants connected by river flow.

Builds the directed graph implied by each plant's downstream reference,
rejects circular cascades, computes the depth of every plant from the
headwaters and an upstream-first ordering that constraint builders use to
emit water-balance constraints with the correct transit delays.

Main entry points:
- build_cascade_topology: build or raise CircularCascadeError
- try_build_cascade_topology: build into a TopologyBuildResult, never raises on cycles
- find_headwaters, find_terminal_plants, get_upstream_plants: read accessors

Examples:
    >>> topology = build_cascade_topology(plants)
    >>> for plant_id in topology.topological_order:
    ...     for upstream_id, delay in get_upstream_plants(topology, plant_id):
    ...         pass  # water released by upstream_id arrives after `delay` hours
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .diagnostics import CascadeDiagnostics
from ..constants import CYCLE_PATH_SEPARATOR
from ..hydro_plants import HydroPlant

UpstreamLink = Tuple[str, float]


class CircularCascadeError(ValueError):
    """Raised when plant downstream references form a cycle."""

    def __init__(self, cycle_path: List[str]):
        self.cycle_path = list(cycle_path)
        super().__init__(f"Circular cascade detected: {format_cycle_path(self.cycle_path)}")


def format_cycle_path(cycle_path: List[str]) -> str:
    return CYCLE_PATH_SEPARATOR.join(cycle_path)


@dataclass(frozen=True)
class CascadeTopology:
    """
    Immutable cascade topology of a set of hydro plants.

    Attributes:
        upstream_map (Mapping[str, Tuple[UpstreamLink, ...]]): plant id -> plants
            discharging into it, as (upstream_id, delay_hours) pairs. Every plant
            has an entry, possibly empty.
        depths (Mapping[str, int]): plant id -> longest number of hops from a
            headwater. Headwaters have depth 0.
        topological_order (Tuple[str, ...]): every plant id once, each plant
            after all of its upstream plants.
        headwaters (Tuple[str, ...]): plants with no upstream plant.
        terminals (Tuple[str, ...]): plants whose release does not reach another
            plant of the set, either because they have no downstream reference
            or because it does not resolve.
        downstream_map (Mapping[str, str]): plant id -> resolved downstream id,
            only for plants with a valid downstream.
    """
    upstream_map: Mapping[str, Tuple[UpstreamLink, ...]] = field(default_factory=lambda: MappingProxyType({}))
    depths: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    topological_order: Tuple[str, ...] = ()
    headwaters: Tuple[str, ...] = ()
    terminals: Tuple[str, ...] = ()
    downstream_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __len__(self):
        return len(self.topological_order)

    def __contains__(self, plant_id):
        return plant_id in self.depths

    def downstream_of(self, plant_id: str) -> Optional[str]:
        return self.downstream_map.get(plant_id)


@dataclass(frozen=True)
class TopologyBuildResult:
    """
    Outcome of try_build_cascade_topology.

    Exactly one of ``topology`` and ``cycle_path`` is set.
    """
    topology: Optional[CascadeTopology]
    cycle_path: Optional[List[str]]
    diagnostics: CascadeDiagnostics

    @property
    def is_valid(self) -> bool:
        return self.topology is not None

    def unwrap(self) -> CascadeTopology:
        if self.topology is None:
            raise CircularCascadeError(self.cycle_path)
        return self.topology


####################################################################################|
# --------------------------------- Graph building ---------------------------------|
####################################################################################|

def build_upstream_map(plants: Iterable[HydroPlant], diagnostics: CascadeDiagnostics):
    """
    Builds the plant lookup and the upstream adjacency from downstream references.

    For every plant with a downstream reference that resolves, appends
    (plant id, travel time) to the downstream plant's upstream list. A reference
    to an unknown plant is reported through ``diagnostics`` and leaves the plant
    unlinked, i.e. a terminal.

    Args:
        plants (Iterable[HydroPlant]): Plant records with unique ids.
        diagnostics (CascadeDiagnostics): Collector for unresolved references.

    Returns:
        tuple: (plant_lookup, upstream_map, downstream_map) where plant_lookup is
            id -> plant in input order, upstream_map is id -> list of
            (upstream_id, delay_hours) and downstream_map is id -> resolved
            downstream id.
    """
    plant_lookup: Dict[str, HydroPlant] = {plant.id: plant for plant in plants}
    upstream_map: Dict[str, List[UpstreamLink]] = {plant_id: [] for plant_id in plant_lookup}
    downstream_map: Dict[str, str] = {}

    for plant_id, plant in plant_lookup.items():
        link = plant.cascade_link
        if link is None:
            continue
        downstream_id, delay_hours = link
        if downstream_id in plant_lookup:
            upstream_map[downstream_id].append((plant_id, float(delay_hours)))
            downstream_map[plant_id] = downstream_id
        else:
            diagnostics.warn(
                f"Unknown downstream reference in cascade topology: plant '{plant_id}' "
                f"references downstream '{downstream_id}' which is not in the system. "
                f"Treating '{plant_id}' as terminal.",
                plant_id=plant_id,
                downstream_plant_id=downstream_id,
            )

    return plant_lookup, upstream_map, downstream_map


####################################################################################|
# -------------------------------- Cycle detection ---------------------------------|
####################################################################################|

def find_cascade_cycle(downstream_map: Mapping[str, str], plant_ids: Iterable[str]) -> Optional[List[str]]:
    """
    Looks for a circular chain of downstream references.

    Depth-first traversal along the downstream relation, started from every
    plant not yet processed so that cycles without any headwater are found too.
    Each plant has at most one downstream, so the active recursion path is a
    simple chain and the traversal is written as a loop.

    Args:
        downstream_map (Mapping[str, str]): plant id -> resolved downstream id.
        plant_ids (Iterable[str]): All plant ids, used as traversal roots in order.

    Returns:
        list or None: The first cycle found, from the first plant of the cycle
            on the active path to the current plant, with the first plant repeated
            at the end (e.g. ['A', 'B', 'C', 'A']). None if the graph is acyclic.

    Examples:
        >>> find_cascade_cycle({'A': 'B', 'B': 'A'}, ['A', 'B'])
        ['A', 'B', 'A']
        >>> find_cascade_cycle({'A': 'A'}, ['A'])
        ['A', 'A']
    """
    processed = set()

    for root in plant_ids:
        if root in processed:
            continue

        path = []
        on_path = set()
        current = root
        while current is not None and current not in processed:
            path.append(current)
            on_path.add(current)

            downstream_id = downstream_map.get(current)
            if downstream_id in on_path:
                return path[path.index(downstream_id):] + [downstream_id]
            current = downstream_id

        processed.update(path)

    return None


####################################################################################|
# ---------------------------- Depths and ordering ---------------------------------|
####################################################################################|

def compute_depths_and_order(upstream_map: Mapping[str, List[UpstreamLink]], downstream_map: Mapping[str, str]):
    """
    Assigns each plant its depth and builds an upstream-first ordering.

    Breadth-first traversal seeded with every headwater at depth 0. A plant's
    depth is the maximum of ``depth + 1`` over all of its upstream plants, and
    the plant is queued only once all of them have been dequeued. The dequeue
    order is therefore a valid topological order even when the branches of a
    confluence have different lengths.

    Args:
        upstream_map (Mapping[str, List[UpstreamLink]]): Acyclic upstream adjacency,
            keys in input order.
        downstream_map (Mapping[str, str]): plant id -> resolved downstream id.

    Returns:
        tuple: (depths, topological_order, headwaters).
    """
    headwaters = [plant_id for plant_id, upstream in upstream_map.items() if not upstream]
    pending_upstream = {plant_id: len(upstream) for plant_id, upstream in upstream_map.items()}

    depths = {plant_id: 0 for plant_id in headwaters}
    topological_order = []
    queue = deque(headwaters)

    while queue:
        current_id = queue.popleft()
        topological_order.append(current_id)

        downstream_id = downstream_map.get(current_id)
        if downstream_id is None:
            continue

        depths[downstream_id] = max(depths.get(downstream_id, 0), depths[current_id] + 1)
        pending_upstream[downstream_id] -= 1
        if pending_upstream[downstream_id] == 0:
            queue.append(downstream_id)

    # Unreachable only on inconsistent input; keep the result total over the plant set.
    reached = set(topological_order)
    for plant_id in upstream_map:
        if plant_id not in reached:
            logging.warning(f"Plant '{plant_id}' not reachable from any headwater; assigning depth 0.")
            depths[plant_id] = 0
            headwaters.append(plant_id)
            topological_order.append(plant_id)

    return depths, topological_order, headwaters


####################################################################################|
# ---------------------------------- Entry points ----------------------------------|
####################################################################################|

def try_build_cascade_topology(plants: Iterable[HydroPlant], diagnostics: Optional[CascadeDiagnostics] = None) -> TopologyBuildResult:
    """
    Builds the cascade topology, reporting a cycle in the result instead of raising.

    Args:
        plants (Iterable[HydroPlant]): Plant records with unique ids.
        diagnostics (CascadeDiagnostics, optional): Collector for build warnings.
            A new one is created if None.

    Returns:
        TopologyBuildResult: topology on success, cycle_path on a circular cascade,
            and the diagnostics collector in both cases.
    """
    if diagnostics is None:
        diagnostics = CascadeDiagnostics()

    plant_lookup, upstream_map, downstream_map = build_upstream_map(plants, diagnostics)

    cycle_path = find_cascade_cycle(downstream_map, plant_lookup.keys())
    if cycle_path is not None:
        logging.error(f"Circular cascade detected: {format_cycle_path(cycle_path)}")
        return TopologyBuildResult(topology=None, cycle_path=cycle_path, diagnostics=diagnostics)

    depths, topological_order, headwaters = compute_depths_and_order(upstream_map, downstream_map)
    terminals = [plant_id for plant_id in plant_lookup if plant_id not in downstream_map]

    topology = CascadeTopology(
        upstream_map=MappingProxyType({plant_id: tuple(upstream) for plant_id, upstream in upstream_map.items()}),
        depths=MappingProxyType(depths),
        topological_order=tuple(topological_order),
        headwaters=tuple(headwaters),
        terminals=tuple(terminals),
        downstream_map=MappingProxyType(dict(downstream_map)),
    )
    logging.debug(
        f"Cascade topology built: {len(topology)} plants, {len(topology.headwaters)} headwaters, "
        f"{len(topology.terminals)} terminals, max depth {max(depths.values(), default=0)}"
    )
    return TopologyBuildResult(topology=topology, cycle_path=None, diagnostics=diagnostics)


def build_cascade_topology(plants: Iterable[HydroPlant], diagnostics: Optional[CascadeDiagnostics] = None) -> CascadeTopology:
    """
    Builds the cascade topology from hydro plant downstream references.

    Steps:
        1. Build the upstream map, warning about unknown downstream references
        2. Reject circular cascades
        3. Compute depths and the topological order from the headwaters
        4. Classify terminals

    Args:
        plants (Iterable[HydroPlant]): Plant records with unique ids. Pumped
            storage plants never reference a downstream plant and are terminals.
        diagnostics (CascadeDiagnostics, optional): Collector for build warnings.

    Returns:
        CascadeTopology: The immutable topology.

    Raises:
        CircularCascadeError: If downstream references form a cycle. The message
            carries the full path, e.g. "Circular cascade detected: A → B → A".

    Examples:
        >>> plants = [
        ...     ReservoirHydro(id="H001", downstream_plant_id="H002", water_travel_time_hours=2.0, ...),
        ...     ReservoirHydro(id="H002", downstream_plant_id="H003", water_travel_time_hours=2.0, ...),
        ...     ReservoirHydro(id="H003", ...),
        ... ]
        >>> topology = build_cascade_topology(plants)
        >>> dict(topology.depths)
        {'H001': 0, 'H002': 1, 'H003': 2}
    """
    return try_build_cascade_topology(plants, diagnostics).unwrap()


####################################################################################|
# ------------------------------------ Queries -------------------------------------|
####################################################################################|

def find_headwaters(topology: CascadeTopology) -> List[str]:
    """Plants with no upstream plant, the sources of each cascade."""
    return list(topology.headwaters)


def find_terminal_plants(topology: CascadeTopology) -> List[str]:
    """Plants whose release does not feed another plant of the system."""
    return list(topology.terminals)


def get_upstream_plants(topology: CascadeTopology, plant_id: str) -> List[UpstreamLink]:
    """
    Returns the (upstream_id, delay_hours) pairs of the plants discharging into ``plant_id``.

    Empty for headwaters and for ids that are not part of the topology.
    """
    return list(topology.upstream_map.get(plant_id, ()))
