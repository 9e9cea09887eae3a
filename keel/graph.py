"""
Dependency graph, topological ordering and cycle detection.
"""

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .faults import CircularDependencyFault, ServiceNotFoundFault


class DependencyGraph:
    """
    Directed graph from component name to the names it depends on.

    Nodes keep insertion (registration) order and edges keep declaration
    order, so every traversal is deterministic. Edges may point at names
    that are not nodes yet; they are only checked when the graph is sorted.
    """

    __slots__ = ("_edges",)

    def __init__(self):
        self._edges: Dict[str, Tuple[str, ...]] = {}  # name -> dependencies

    def add_node(self, name: str, dependencies: Iterable[str] = ()) -> None:
        """
        Add (or replace) a node and its outgoing edges.

        Args:
            name: Component name
            dependencies: Names this component depends on
        """
        self._edges[name] = tuple(dependencies)

    def remove_node(self, name: str) -> None:
        """Remove a node and its outgoing edges. Incoming edges are kept."""
        self._edges.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._edges))

    @property
    def nodes(self) -> List[str]:
        return list(self._edges)

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        return self._edges.get(name, ())

    def dependents_of(self, name: str) -> List[str]:
        """Nodes that declare a direct dependency on `name`."""
        return [node for node, deps in self._edges.items() if name in deps]

    def missing_dependencies(self) -> Dict[str, List[str]]:
        """Map of node -> declared dependencies that are not nodes."""
        missing = {}
        for node, deps in self._edges.items():
            absent = [dep for dep in deps if dep not in self._edges]
            if absent:
                missing[node] = absent
        return missing

    def topological_sort(
        self, *, skip_missing: bool = False, include_missing: bool = False
    ) -> List[str]:
        """
        Order all nodes so that dependencies precede their dependents.

        Depth-first over the nodes in insertion order, following edges in
        declaration order. The current path is kept as an explicit ancestor
        stack, so a reported cycle is exactly the traversal path from the
        repeated node back to itself.

        Args:
            skip_missing: Ignore edges to names that are not nodes instead
                of raising
            include_missing: Emit names that are not nodes as leaves, just
                before the first node that depends on them

        Returns:
            Every node exactly once, in dependency order (plus missing
            names when include_missing is set)

        Raises:
            CircularDependencyFault: If the graph contains a cycle
            ServiceNotFoundFault: If a node depends on a name that is not a
                node and neither skip_missing nor include_missing is set
        """
        visited: Set[str] = set()
        order: List[str] = []

        for root in self._edges:
            if root in visited:
                continue

            path: List[str] = [root]
            on_path: Set[str] = {root}
            frames = [(root, iter(self._edges[root]))]

            while frames:
                node, pending = frames[-1]
                for dep in pending:
                    if dep in visited:
                        continue
                    if dep in on_path:
                        raise CircularDependencyFault(path[path.index(dep):])
                    if dep not in self._edges:
                        if include_missing:
                            visited.add(dep)
                            order.append(dep)
                            continue
                        if skip_missing:
                            continue
                        raise ServiceNotFoundFault(dep, required_by=node)
                    path.append(dep)
                    on_path.add(dep)
                    frames.append((dep, iter(self._edges[dep])))
                    break
                else:
                    # All dependencies done
                    frames.pop()
                    path.pop()
                    on_path.discard(node)
                    visited.add(node)
                    order.append(node)

        return order

    def find_cycle(self) -> Optional[List[str]]:
        """First cycle in traversal order, or None. Missing dependencies are ignored."""
        try:
            self.topological_sort(skip_missing=True)
        except CircularDependencyFault as fault:
            return fault.cycle
        return None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def export_dot(self, groups: Optional[Mapping[str, str]] = None) -> str:
        """
        Export graph as Graphviz DOT format.

        Args:
            groups: Optional name -> group label (e.g. context type) shown
                under each node and used to pick its fill colour

        Returns:
            DOT string
        """
        groups = groups or {}
        lines = ["digraph DependencyGraph {"]
        lines.append("  rankdir=LR;")
        lines.append("  node [shape=box];")

        for name in self._edges:
            group = groups.get(name)
            if group:
                color = self._group_color(group)
                lines.append(f'  "{name}" [label="{name}\\n({group})" fillcolor="{color}" style=filled];')
            else:
                lines.append(f'  "{name}";')

        for name, deps in self._edges.items():
            for dep in deps:
                if dep in self._edges:
                    lines.append(f'  "{name}" -> "{dep}";')
                else:
                    lines.append(f'  "{name}" -> "{dep}" [style=dashed color=red];')

        lines.append("}")
        return "\n".join(lines)

    def _group_color(self, group: str) -> str:
        colors = {
            "privileged": "lightcoral",
            "restricted": "lightgreen",
            "context_free": "lightblue",
        }
        return colors.get(group, "white")

    def get_tree_view(self, root: Optional[str] = None) -> str:
        """
        Get tree view of dependencies.

        Args:
            root: Optional root name (if None, show every node nothing depends on)

        Returns:
            Tree view as string
        """
        if root:
            return self._tree_view_recursive(root, "", set())

        all_deps = set()
        for deps in self._edges.values():
            all_deps.update(deps)

        roots = [name for name in self._edges if name not in all_deps]

        return "\n".join(self._tree_view_recursive(name, "", set()) for name in roots)

    def _tree_view_recursive(self, name: str, prefix: str, ancestors: Set[str]) -> str:
        if name in ancestors:
            return f"{prefix}├── {name} (circular)"

        if name not in self._edges:
            return f"{prefix}├── {name} (missing)"

        lines = [f"{prefix}├── {name}"]

        deps = self._edges[name]
        for i, dep in enumerate(deps):
            is_last = i == len(deps) - 1
            new_prefix = prefix + ("    " if is_last else "│   ")
            lines.append(self._tree_view_recursive(dep, new_prefix, ancestors | {name}))

        return "\n".join(lines)
