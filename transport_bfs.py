"""
Transportation Problem Solver - Initial basic feasible solution

North-West Corner, Least-Cost and Vogel's Approximation. Every builder
is a generator working on disposable copies of cost, supply and demand:
each step picks a cell, ships min(supply, demand) through it and
overwrites the costs of the exhausted row or column with INF.
"""

from transport_errors import ConfigurationError
from transport_types import INF, Coord, clean


def _build(select, cost, supply, demand):
    """
    Shared loop of the three heuristics

    Args:
        select: callable returning the next Coord (or None) for a cost matrix
        cost: working cost matrix, mutated in place
        supply: working supply list, mutated in place
        demand: working demand list, mutated in place

    Yields:
        tuple: (Coord, quantity) for every basic cell, in selection order
    """
    rows, cols = len(supply), len(demand)
    for _ in range(rows + cols - 1):
        coord = select(cost)
        if coord is None:
            return
        x, y = coord
        qty = min(supply[y], demand[x])
        row_exhausted = supply[y] < demand[x]
        supply[y] = clean(supply[y] - qty)
        demand[x] = clean(demand[x] - qty)

        if row_exhausted:
            cost[y] = [INF] * cols
        else:
            for row in cost:
                row[x] = INF

        yield coord, qty


def _first_available(cost):
    for y, row in enumerate(cost):
        for x, c in enumerate(row):
            if c != INF:
                return Coord(x, y)
    return None


def _cheapest(cost):
    best = None
    best_cost = INF
    for y, row in enumerate(cost):
        for x, c in enumerate(row):
            if c < best_cost:
                best_cost = c
                best = Coord(x, y)
    return best


def _vogel_select(cost):
    """Pick the cheapest cell of the line with the largest penalty"""
    rows, cols = len(cost), len(cost[0])

    def penalty(values):
        available = sorted(c for c in values if c != INF)
        if len(available) < 2:
            # single cell left: infinite penalty, kept out of the comparison
            return None
        return available[1] - available[0]

    best_pen = None
    best_line = None

    # columns first, rows only win on a strictly greater penalty
    for x in range(cols):
        pen = penalty(cost[y][x] for y in range(rows))
        if pen is not None and (best_pen is None or pen > best_pen):
            best_pen = pen
            best_line = ('col', x)
    for y in range(rows):
        pen = penalty(cost[y])
        if pen is not None and (best_pen is None or pen > best_pen):
            best_pen = pen
            best_line = ('row', y)

    if best_line is None:
        return _cheapest(cost)

    kind, index = best_line
    if kind == 'col':
        y = min(range(rows), key=lambda r: cost[r][index])
        return Coord(index, y)
    x = min(range(cols), key=lambda c: cost[index][c])
    return Coord(x, index)


def northwest_corner(cost, supply, demand):
    """North-West Corner rule: ignores cost entirely"""
    return _build(_first_available, cost, supply, demand)


def least_cost(cost, supply, demand):
    """Least-Cost (matrix minimum) method"""
    return _build(_cheapest, cost, supply, demand)


def vogel(cost, supply, demand):
    """Vogel's Approximation Method"""
    return _build(_vogel_select, cost, supply, demand)


METHODS = {
    'northwest': northwest_corner,
    'nw': northwest_corner,
    'least_cost': least_cost,
    'lcm': least_cost,
    'vogel': vogel,
    'vam': vogel,
}


def get_method(name):
    try:
        return METHODS[name.lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"Unknown initial solution method {name!r}; "
            f"expected one of {', '.join(sorted(METHODS))}"
        ) from None
