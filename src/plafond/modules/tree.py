# src/plafond/modules/tree.py
# -*- coding: utf-8 -*-

import collections
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Set, Tuple

import networkx as nx

from ..datatypes import ProcessTree
from ..exceptions import TargetNotFound
from .procfs import PROC_ROOT, list_pids, read_parent_pid

log = logging.getLogger(__name__)


def _build_parent_graph(pids: List[int], proc_root: Path) -> "nx.DiGraph":
    """
    One enumeration pass: a node per pid, an edge ppid -> pid.

    Processes that exit before their stat is read stay as isolated nodes;
    they have no edge to hang from and are never reached by a traversal.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(pids)
    for pid in pids:
        ppid = read_parent_pid(pid, proc_root)
        if ppid is None:
            continue
        graph.add_edge(ppid, pid)
    self_loops = list(nx.selfloop_edges(graph))
    if self_loops:
        log.warning(f"Process table snapshot has self-parented PIDs: {[u for u, _ in self_loops]}")
    log.debug(
        f"Built process graph with {graph.number_of_nodes()} nodes and {graph.number_of_edges()} edges."
    )
    return graph


def _collect_subtree(graph: "nx.DiGraph", root_pid: int) -> List[int]:
    """
    Breadth-first walk from root_pid.

    The visited set bounds the walk by the number of distinct pids even if
    pid reuse during enumeration produced a cycle.
    """
    visited: Set[int] = {root_pid}
    order: List[int] = [root_pid]
    queue = collections.deque([root_pid])
    while queue:
        current = queue.popleft()
        for child in sorted(graph.successors(current)):
            if child in visited:
                continue
            visited.add(child)
            order.append(child)
            queue.append(child)
    return order


def build_process_tree(root_pid: int, proc_root: Path = PROC_ROOT) -> ProcessTree:
    """
    Snapshot of root_pid and all of its transitive descendants.

    Raises TargetNotFound when root_pid is not part of the enumeration.
    """
    pids = list_pids(proc_root)
    if root_pid not in set(pids):
        raise TargetNotFound(root_pid)

    graph = _build_parent_graph(pids, proc_root)
    members = _collect_subtree(graph, root_pid)

    parents: Dict[int, int] = {}
    children: Dict[int, Tuple[int, ...]] = {}
    for pid in members:
        kids = tuple(sorted(graph.successors(pid)))
        if kids:
            children[pid] = kids
        for ppid in graph.predecessors(pid):
            parents[pid] = ppid
    log.info(f"Process tree rooted at PID {root_pid} has {len(members)} member(s).")
    return ProcessTree(
        root_pid=root_pid,
        parents=MappingProxyType(parents),
        children=MappingProxyType(children),
        members=tuple(members),
    )
