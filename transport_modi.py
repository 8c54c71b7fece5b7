"""
Transportation Problem Solver - MODI / stepping-stone core

Potentials, reduced costs, entering cell, closed loop search and the
pivot along that loop. Basic cells are a flat list of Coord; the row and
column indexes needed by the loop search are rebuilt on every call.
"""

import logging
from collections import deque

from transport_errors import ConsistencyError
from transport_types import Coord, clean, is_positive

logger = logging.getLogger(__name__)

HORIZONTAL = 'row'
VERTICAL = 'col'


class DisjointSet:
    """Union-find over the row nodes 0..R-1 and column nodes R..R+C-1"""

    def __init__(self, size):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, node):
        while self.parent[node] != node:
            self.parent[node] = self.parent[self.parent[node]]
            node = self.parent[node]
        return node

    def union(self, a, b):
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self.rank[ra] < self.rank[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        if self.rank[ra] == self.rank[rb]:
            self.rank[ra] += 1
        return True


def is_spanning_tree(basics, rows, cols):
    """True when the basic cells connect every row and column without a loop"""
    if len(basics) != rows + cols - 1:
        return False
    dsu = DisjointSet(rows + cols)
    return all(dsu.union(y, rows + x) for x, y in basics)


def ensure_spanning_tree(cost, basics, rows, cols):
    """
    Repair a degenerate basis in place

    Joins disconnected components with zero-quantity basic cells, each
    placed at the cheapest cell bridging two components.

    Returns:
        list: Coords that were added to basics
    """
    dsu = DisjointSet(rows + cols)
    for x, y in basics:
        if not dsu.union(y, rows + x):
            raise ConsistencyError(f"Basic cells contain a closed loop through {Coord(x, y)}")

    added = []
    basic_set = set(basics)
    while len(basics) < rows + cols - 1:
        best = None
        best_cost = None
        for y in range(rows):
            for x in range(cols):
                if (x, y) in basic_set or dsu.find(y) == dsu.find(rows + x):
                    continue
                if best_cost is None or cost[y][x] < best_cost:
                    best_cost = cost[y][x]
                    best = Coord(x, y)
        if best is None:
            raise ConsistencyError("Cannot complete the basic cells into a spanning tree")
        dsu.union(best.y, rows + best.x)
        basics.append(best)
        basic_set.add(best)
        added.append(best)

    if added:
        logger.warning("Degenerate basis: added zero cells %s", added)
    return added


def compute_potentials(cost, basics, rows, cols):
    """
    Solve cost[y][x] = u[y] - v[x] over the basic cells, with u[0] = 0

    Returns:
        tuple: (u, v) lists of potentials

    Raises:
        ConsistencyError: some potential stays unknown after R+C passes
    """
    u = [None] * rows
    v = [None] * cols
    u[0] = 0

    for _ in range(rows + cols):
        progress = False
        for x, y in basics:
            if u[y] is not None and v[x] is None:
                v[x] = u[y] - cost[y][x]
                progress = True
            elif v[x] is not None and u[y] is None:
                u[y] = cost[y][x] + v[x]
                progress = True
        if not progress:
            break

    if any(p is None for p in u) or any(p is None for p in v):
        raise ConsistencyError(
            f"Potentials unresolved (u={u}, v={v}); basic cells are disconnected"
        )
    return u, v


def reduced_costs(cost, basics, u, v):
    """
    u[y] - v[x] - cost[y][x] for every non-basic cell, None for basic ones
    """
    basic_set = set(basics)
    return [
        [None if (x, y) in basic_set else u[y] - v[x] - c for x, c in enumerate(row)]
        for y, row in enumerate(cost)
    ]


def find_entering(reduced):
    """
    Non-basic cell with the strictly greatest positive reduced cost

    Returns:
        tuple: (Coord, value), or (None, None) when the solution is optimal
    """
    entering = None
    best = None
    for y, row in enumerate(reduced):
        for x, value in enumerate(row):
            if value is None or not is_positive(value):
                continue
            if best is None or value > best:
                best = value
                entering = Coord(x, y)
    return entering, best


def find_cycle(start, basics):
    """
    Shortest closed loop through the entering cell and basic cells

    Breadth-first search over partial paths that alternate horizontal and
    vertical moves. The loop returned starts with the entering cell.

    Raises:
        ConsistencyError: no loop exists
    """
    by_row = {}
    by_col = {}
    for cell in basics:
        by_row.setdefault(cell.y, []).append(cell)
        by_col.setdefault(cell.x, []).append(cell)

    queue = deque()
    for cell in by_row.get(start.y, []):
        queue.append(([start, cell], HORIZONTAL))
    for cell in by_col.get(start.x, []):
        queue.append(([start, cell], VERTICAL))

    while queue:
        path, last_move = queue.popleft()
        tail = path[-1]
        if len(path) >= 4 and len(path) % 2 == 0:
            if last_move == HORIZONTAL and tail.x == start.x:
                return path
            if last_move == VERTICAL and tail.y == start.y:
                return path

        if last_move == HORIZONTAL:
            candidates, move = by_col.get(tail.x, []), VERTICAL
        else:
            candidates, move = by_row.get(tail.y, []), HORIZONTAL
        for cell in candidates:
            if cell not in path:
                queue.append((path + [cell], move))

    raise ConsistencyError(f"No closed loop through entering cell {start}")


def leaving_cell(cycle, assignment):
    """First cell at an odd loop position holding the smallest quantity"""
    return min(cycle[1::2], key=lambda c: assignment[c.y][c.x])


def pivot(cycle, assignment, basics):
    """
    Shift theta around the loop and swap the leaving cell for the entering one

    Even positions gain theta, odd positions lose it. The first odd cell
    holding the minimum leaves; the entering cell takes its slot in basics.

    Returns:
        tuple: (leaving Coord, theta)
    """
    leaving = leaving_cell(cycle, assignment)
    theta = assignment[leaving.y][leaving.x]

    for idx, (x, y) in enumerate(cycle):
        if idx % 2 == 0:
            assignment[y][x] = clean(assignment[y][x] + theta)
        else:
            assignment[y][x] = clean(assignment[y][x] - theta)

    entering = cycle[0]
    assignment[entering.y][entering.x] = theta
    basics[basics.index(leaving)] = entering

    logger.debug("Pivot: %s enters, %s leaves, theta=%s", entering, leaving, theta)
    return leaving, theta
