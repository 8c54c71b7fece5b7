"""
Transportation Problem Solver - Core Logic
Initial BFS (North-West / Least-Cost / VAM) + MODI/UV Method
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from transport_bfs import get_method
from transport_errors import ConfigurationError, IterationLimitError
from transport_modi import (
    compute_potentials,
    ensure_spanning_tree,
    find_cycle,
    find_entering,
    leaving_cell,
    pivot,
    reduced_costs,
)
from transport_types import Coord, is_zero, to_number

logger = logging.getLogger(__name__)

DUMMY_NAME = 'Dummy'


@dataclass
class TransportModel:
    """
    Input of a transportation problem

    Args:
        matrix: 2D list of costs (R x C)
        supply: list of supply values (length R)
        demand: list of demand values (length C)
        rows: optional source names
        cols: optional destination names
        out: optional expected optimal cost, used to validate a solve
    """
    matrix: List[List[Any]]
    supply: List[Any]
    demand: List[Any]
    rows: Optional[List[str]] = None
    cols: Optional[List[str]] = None
    out: Any = None

    def __post_init__(self):
        self.matrix = [list(row) for row in self.matrix]
        self.supply = list(self.supply)
        self.demand = list(self.demand)
        if not self.matrix or not self.matrix[0]:
            raise ConfigurationError("Cost matrix must have at least one row and one column")
        width = len(self.matrix[0])
        if any(len(row) != width for row in self.matrix):
            raise ConfigurationError("Cost matrix rows must all have the same length")
        if len(self.supply) != len(self.matrix):
            raise ConfigurationError(
                f"Supply has {len(self.supply)} entries but the matrix has {len(self.matrix)} rows"
            )
        if len(self.demand) != width:
            raise ConfigurationError(
                f"Demand has {len(self.demand)} entries but the matrix has {width} columns"
            )

        self.matrix = [[to_number(c) for c in row] for row in self.matrix]
        self.supply = [to_number(s) for s in self.supply]
        self.demand = [to_number(d) for d in self.demand]
        if self.out is not None:
            self.out = to_number(self.out)

        if any(not math.isfinite(c) for row in self.matrix for c in row):
            raise ConfigurationError("Costs must be finite")
        if any(not math.isfinite(q) for q in self.supply + self.demand):
            raise ConfigurationError("Supply and demand must be finite")
        if any(s < 0 for s in self.supply) or any(d < 0 for d in self.demand):
            raise ConfigurationError("Supply and demand must be non-negative")

        self.rows = self._names(self.rows, len(self.supply), 'S')
        self.cols = self._names(self.cols, width, 'D')

    @staticmethod
    def _names(names, count, prefix):
        if names is None:
            return [f"{prefix}{k + 1}" for k in range(count)]
        names = [str(n) for n in names]
        if len(names) != count:
            raise ConfigurationError(f"Expected {count} names, got {len(names)}")
        return names

    @classmethod
    def from_dict(cls, data):
        """Build a model from a JSON-like dict ('matrix' or 'costs' key)"""
        matrix = data.get('matrix', data.get('costs'))
        if matrix is None or 'supply' not in data or 'demand' not in data:
            raise ConfigurationError("Model needs 'matrix', 'supply' and 'demand'")
        return cls(matrix, data['supply'], data['demand'],
                   rows=data.get('rows'), cols=data.get('cols'), out=data.get('out'))

    def is_balanced(self):
        return is_zero(sum(self.supply) - sum(self.demand))

    def balanced(self):
        """
        Copy of the model with a zero-cost dummy row or column

        Returns:
            tuple: (model, 'row' | 'col' | None)
        """
        matrix = [row[:] for row in self.matrix]
        supply, demand = self.supply[:], self.demand[:]
        rows, cols = self.rows[:], self.cols[:]
        diff = sum(supply) - sum(demand)

        if is_zero(diff):
            added = None
        elif diff > 0:
            for row in matrix:
                row.append(0)
            demand.append(diff)
            cols.append(_unique_name(DUMMY_NAME, cols))
            added = 'col'
        else:
            matrix.append([0] * len(demand))
            supply.append(-diff)
            rows.append(_unique_name(DUMMY_NAME, rows))
            added = 'row'
        return TransportModel(matrix, supply, demand, rows=rows, cols=cols, out=self.out), added


def _unique_name(name, taken):
    candidate, k = name, 1
    while candidate in taken:
        k += 1
        candidate = f"{name} {k}"
    return candidate


def load_model(path):
    """Read a model from a JSON file"""
    with open(path, encoding='utf-8') as fh:
        return TransportModel.from_dict(json.load(fh))


@dataclass
class CellState:
    """What a renderer needs to draw one cell"""
    cost: Any
    basic: bool
    quantity: Any = None
    role: Optional[str] = None          # 'in' or 'out' around a pivot
    sign: Optional[str] = None          # '+' or '-' on the pivot loop
    reduced_cost: Any = None


@dataclass
class StepRecord:
    label: str
    cells: List[List[CellState]]
    supply: List[Any]
    demand: List[Any]
    u: Optional[List[Any]] = None
    v: Optional[List[Any]] = None
    value: Any = None
    extra: dict = field(default_factory=dict)


class Tableau:
    """
    Transportation tableau driven to optimality by the MODI method

    The initial basic feasible solution is built on construction; every
    call to step() performs one potential pass and at most one pivot.
    """

    def __init__(self, model, method='vogel', balance='reject',
                 observer: Optional[Callable[[StepRecord], None]] = None):
        """
        Args:
            model: TransportModel (or a dict accepted by TransportModel.from_dict)
            method: 'northwest', 'least_cost' or 'vogel' (aliases 'nw', 'lcm', 'vam')
            balance: 'reject' raises on unbalanced totals, 'dummy' adds a
                zero-cost dummy row or column
            observer: called with every StepRecord as it is logged
        """
        if isinstance(model, dict):
            model = TransportModel.from_dict(model)
        if balance not in ('reject', 'dummy'):
            raise ConfigurationError(f"Unknown balance strategy {balance!r}")

        self.dummy_added = None
        if not model.is_balanced():
            if balance == 'reject':
                raise ConfigurationError(
                    f"Unbalanced problem: supply {sum(model.supply)} != demand {sum(model.demand)}"
                )
            model, self.dummy_added = model.balanced()

        self.model = model
        self.method = method
        self.builder = get_method(method)
        self.observer = observer

        self.cost = [row[:] for row in model.matrix]
        self.supply = model.supply[:]
        self.demand = model.demand[:]
        self.m = len(self.supply)
        self.n = len(self.demand)

        self.assignment = [[0] * self.n for _ in range(self.m)]
        self.basics: List[Coord] = []
        self.u = None
        self.v = None
        self.reduced = None
        self.solved = False
        self.value = None
        self.iterations = 0
        self.logs: List[StepRecord] = []

        self._build_initial()

    def _build_initial(self):
        cost = [row[:] for row in self.cost]
        supply = self.supply[:]
        demand = self.demand[:]

        for coord, qty in self.builder(cost, supply, demand):
            self.assignment[coord.y][coord.x] = qty
            self.basics.append(coord)
            self.log(f"{self.method}: ship {qty} on {self.route_name(coord)}",
                     roles={coord: 'in'}, supply=supply[:], demand=demand[:])

        added = ensure_spanning_tree(self.cost, self.basics, self.m, self.n)
        for coord in added:
            self.assignment[coord.y][coord.x] = 0
        self.log("Initial basic feasible solution", extra={'degenerate_cells': added})

    def is_dummy(self, coord):
        """True for cells on the line added by balance='dummy'"""
        if self.dummy_added == 'row':
            return coord.y == self.m - 1
        if self.dummy_added == 'col':
            return coord.x == self.n - 1
        return False

    def route_name(self, coord):
        return f"{self.model.rows[coord.y]} → {self.model.cols[coord.x]}"

    def log(self, label, roles=None, signs=None, supply=None, demand=None, extra=None):
        """Record a snapshot of the tableau and hand it to the observer"""
        roles = roles or {}
        signs = signs or {}
        basic_set = set(self.basics)
        cells = []
        for y in range(self.m):
            row = []
            for x in range(self.n):
                coord = Coord(x, y)
                basic = coord in basic_set
                row.append(CellState(
                    cost=self.cost[y][x],
                    basic=basic,
                    quantity=self.assignment[y][x] if basic else None,
                    role=roles.get(coord),
                    sign=signs.get(coord),
                    reduced_cost=self.reduced[y][x] if self.reduced is not None else None,
                ))
            cells.append(row)

        record = StepRecord(
            label=label,
            cells=cells,
            supply=supply if supply is not None else self.supply[:],
            demand=demand if demand is not None else self.demand[:],
            u=self.u[:] if self.u is not None else None,
            v=self.v[:] if self.v is not None else None,
            value=self.current_value(),
            extra=extra or {},
        )
        self.logs.append(record)
        if self.observer is not None:
            self.observer(record)
        return record

    def is_solved(self):
        return self.solved

    def current_value(self):
        """Total cost of the current basic assignment"""
        return sum(self.assignment[y][x] * self.cost[y][x] for x, y in self.basics)

    def step(self):
        """
        One MODI iteration

        Returns:
            bool: True if a pivot was made, False once the tableau is optimal
        """
        if self.solved:
            return False

        self.u, self.v = compute_potentials(self.cost, self.basics, self.m, self.n)
        self.reduced = reduced_costs(self.cost, self.basics, self.u, self.v)
        entering, gain = find_entering(self.reduced)

        if entering is None:
            self.solved = True
            self.value = self.current_value()
            self.log("Optimal solution")
            logger.info("Optimal cost %s after %d pivots", self.value, self.iterations)
            return False

        cycle = find_cycle(entering, self.basics)
        leaving = leaving_cell(cycle, self.assignment)
        signs = {cell: '+' if idx % 2 == 0 else '-' for idx, cell in enumerate(cycle)}
        self.log(f"Potentials: {self.route_name(entering)} enters, "
                 f"{self.route_name(leaving)} leaves",
                 roles={entering: 'in', leaving: 'out'}, signs=signs,
                 extra={'cycle': cycle, 'gain': gain})

        leaving, theta = pivot(cycle, self.assignment, self.basics)
        self.iterations += 1
        self.u = self.v = self.reduced = None
        self.log(f"Pivot {self.iterations}: shift {theta} around the loop",
                 roles={entering: 'in', leaving: 'out'},
                 extra={'cycle': cycle, 'theta': theta})
        return True

    def solve(self, max_iterations=None):
        """
        Step until optimal

        Args:
            max_iterations: pivot budget, defaults to 100 * R * C

        Returns:
            Optimal total cost
        """
        if max_iterations is None:
            max_iterations = 100 * self.m * self.n
        while not self.solved:
            if self.iterations >= max_iterations:
                raise IterationLimitError(
                    f"No optimum after {self.iterations} pivots", iterations=self.iterations
                )
            self.step()
        return self.value

    def shipments(self):
        """Basic cells carrying a non-zero quantity"""
        return [
            (coord, self.assignment[coord.y][coord.x])
            for coord in sorted(self.basics, key=lambda c: (c.y, c.x))
            if not is_zero(self.assignment[coord.y][coord.x])
        ]


def solve_transport(cost, supply, demand, method='vogel', balance='reject'):
    """
    Solve a transportation problem in one call

    Returns:
        Tableau: solved tableau
    """
    tableau = Tableau(TransportModel(cost, supply, demand), method=method, balance=balance)
    tableau.solve()
    return tableau
