import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..constants import MAX_LOGGED_CASCADE_WARNINGS


@dataclass(frozen=True)
class UnresolvedReference:
    """A plant whose downstream reference is not part of the plant set."""
    plant_id: str
    downstream_plant_id: str


@dataclass
class CascadeDiagnostics:
    """
    Collects the warnings produced while building a cascade topology.

    Every warning is kept in ``messages`` so callers and tests can inspect
    them. Only the first ``max_log`` are forwarded to the logging system,
    followed by a single suppression notice, so that a registry with many
    dangling references does not flood the console.

    A collector belongs to one build call; pass the same instance to several
    builds only if their warnings should share the log budget.

    Examples:
        >>> diagnostics = CascadeDiagnostics(max_log=5)
        >>> topology = build_cascade_topology(plants, diagnostics=diagnostics)
        >>> for ref in diagnostics.unresolved_references:
        ...     print(ref.plant_id, '->', ref.downstream_plant_id)
    """
    max_log: int = MAX_LOGGED_CASCADE_WARNINGS
    messages: List[str] = field(default_factory=list)
    unresolved_references: List[UnresolvedReference] = field(default_factory=list)
    suppressed_count: int = 0

    def warn(self, message: str, plant_id: Optional[str] = None, downstream_plant_id: Optional[str] = None):
        self.messages.append(message)
        if plant_id is not None and downstream_plant_id is not None:
            self.unresolved_references.append(UnresolvedReference(plant_id, downstream_plant_id))

        n_messages = len(self.messages)
        if n_messages <= self.max_log:
            logging.warning(message)
            return
        if n_messages == self.max_log + 1:
            logging.warning(f"More than {self.max_log} cascade warnings; further warnings are suppressed.")
        self.suppressed_count += 1

    @property
    def has_warnings(self) -> bool:
        return len(self.messages) > 0
