"""Dependency Module - Orders modules so dependencies run first."""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ResolvedOrder:
    """Execution order produced by the resolver."""
    modules: List[Any] = field(default_factory=list)
    has_cycle: bool = False
    unresolved: List[str] = field(default_factory=list)

    @property
    def module_ids(self) -> List[str]:
        return [m.id for m in self.modules]


def _declared_dependencies(module: Any) -> List[str]:
    get_dependencies = getattr(module, "get_dependencies", None)
    if get_dependencies is None:
        return []
    return [dep.module_id for dep in get_dependencies()]


class DependencyResolver:
    """Topologically orders a module subset by declared dependencies.

    Only dependencies on modules inside the subset count; anything else is
    ignored. Among modules that are ready at the same time the original
    order wins, so the result is deterministic. A cycle makes the resolver
    give up and return the original order.
    """

    def resolve(self, modules: Sequence[Any]) -> ResolvedOrder:
        """Order modules so each one comes after its in-subset dependencies.

        Args:
            modules: Modules in their priority-configured order

        Returns:
            ResolvedOrder with the ordered modules
        """
        position: Dict[str, int] = {m.id: i for i, m in enumerate(modules)}
        dependents: Dict[str, List[str]] = {m.id: [] for m in modules}
        in_degree: Dict[str, int] = {m.id: 0 for m in modules}

        for module in modules:
            seen = set()
            for dep_id in _declared_dependencies(module):
                if dep_id not in position:
                    logger.debug(
                        "Ignoring dependency of '%s' on '%s' (not selected)",
                        module.id,
                        dep_id,
                    )
                    continue
                if dep_id in seen:
                    continue
                seen.add(dep_id)
                dependents[dep_id].append(module.id)
                in_degree[module.id] += 1

        ready = [position[mid] for mid, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        ordered: List[Any] = []
        while ready:
            index = heapq.heappop(ready)
            module = modules[index]
            ordered.append(module)
            for dependent in dependents[module.id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(ordered) != len(modules):
            unresolved = [m.id for m in modules if in_degree[m.id] > 0]
            logger.warning(
                "Circular dependency detected in modules (%s), using original order",
                ", ".join(unresolved),
            )
            return ResolvedOrder(
                modules=list(modules),
                has_cycle=True,
                unresolved=unresolved,
            )

        return ResolvedOrder(modules=ordered)
