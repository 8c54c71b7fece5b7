import json
from decimal import Decimal
from fractions import Fraction
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from transport_errors import ConfigurationError, IterationLimitError
from transport_modi import is_spanning_tree
from transport_solver import Tableau, TransportModel, load_model, solve_transport
from transport_tables import generate_sample_data
from transport_types import Coord

TEXTBOOK = {
    "matrix": [[19, 30, 50, 10], [70, 30, 40, 60], [40, 8, 70, 20]],
    "supply": [7, 9, 18],
    "demand": [5, 8, 7, 14],
    "out": 743,
}

SMALL = {
    "matrix": [[6, 4, 1], [3, 8, 7], [4, 4, 2]],
    "supply": [50, 40, 60],
    "demand": [20, 95, 35],
    "out": 555,
}

METHODS = ["northwest", "least_cost", "vogel"]


def _check_invariants(tableau):
    assert len(tableau.basics) == tableau.m + tableau.n - 1
    assert is_spanning_tree(tableau.basics, tableau.m, tableau.n)
    for y in range(tableau.m):
        assert sum(tableau.assignment[y]) == pytest.approx(tableau.supply[y])
    for x in range(tableau.n):
        assert sum(row[x] for row in tableau.assignment) == pytest.approx(tableau.demand[x])
    assert all(q >= 0 for row in tableau.assignment for q in row)


@pytest.mark.parametrize("method, initial", [
    ("northwest", 1015),
    ("least_cost", 814),
    ("vogel", 779),
])
def test_textbook_reaches_reference_optimum(method, initial):
    model = TransportModel.from_dict(TEXTBOOK)
    tableau = Tableau(model, method=method)
    assert tableau.current_value() == initial
    assert not tableau.is_solved()

    calls = 0
    while not tableau.is_solved():
        tableau.step()
        calls += 1
        assert calls <= tableau.m * tableau.n + 1

    assert tableau.current_value() == model.out
    assert tableau.value == model.out


@pytest.mark.parametrize("method", METHODS)
def test_small_instance(method):
    tableau = Tableau(SMALL, method=method)
    assert tableau.solve() == 555
    assert tableau.assignment == [[0, 15, 35], [20, 20, 0], [0, 60, 0]]


def test_two_by_two_northwest_is_already_optimal():
    tableau = Tableau(TransportModel([[4, 6], [5, 3]], [30, 40], [20, 50]), method="nw")
    assert tableau.assignment == [[20, 10], [0, 40]]
    assert tableau.basics == [Coord(0, 0), Coord(1, 0), Coord(1, 1)]

    assert tableau.step() is False
    assert tableau.is_solved()
    assert tableau.current_value() == 260
    assert tableau.reduced[1][0] == -4


def test_solved_is_absorbing():
    tableau = Tableau(TEXTBOOK)
    tableau.solve()
    logged = len(tableau.logs)
    snapshot = [row[:] for row in tableau.assignment]

    assert tableau.step() is False
    assert len(tableau.logs) == logged
    assert tableau.assignment == snapshot


@pytest.mark.parametrize("method", METHODS)
@pytest.mark.parametrize("seed", [1, 7, 42])
@pytest.mark.parametrize("shape", [(3, 4), (4, 4), (5, 3)])
def test_random_models_keep_invariants(method, seed, shape):
    cost, supply, demand = generate_sample_data(shape[0], shape[1], seed=seed)
    tableau = Tableau(TransportModel(cost, supply, demand), method=method)
    _check_invariants(tableau)

    previous = tableau.current_value()
    while not tableau.is_solved():
        assert tableau.iterations <= 100 * tableau.m * tableau.n
        pivoted = tableau.step()
        _check_invariants(tableau)
        value = tableau.current_value()
        assert value <= previous
        if pivoted and tableau.logs[-1].extra["theta"] > 0:
            assert value < previous
        previous = value

    for y, row in enumerate(tableau.reduced):
        for x, reduced in enumerate(row):
            if Coord(x, y) not in tableau.basics:
                assert reduced <= 0


def test_all_methods_agree_on_optimum():
    cost, supply, demand = generate_sample_data(6, 5, seed=3)
    values = {solve_transport(cost, supply, demand, method=m).value for m in METHODS}
    assert len(values) == 1


def test_step_records():
    records = []
    tableau = Tableau(TEXTBOOK, method="northwest", observer=records.append)

    assert records == tableau.logs
    assert len(records) == 3 + 4 - 1 + 1
    assert records[0].cells[0][0].role == "in"
    assert records[0].cells[0][0].quantity == 5
    assert records[0].supply == [2, 9, 18]
    assert records[-2].label.startswith("northwest")
    assert records[-1].label == "Initial basic feasible solution"
    assert records[-1].value == 1015

    assert tableau.step() is True
    potentials, pivot_record = records[-2], records[-1]
    roles = [cell.role for row in potentials.cells for cell in row if cell.role]
    assert sorted(roles) == ["in", "out"]
    assert potentials.u[0] == 0
    assert potentials.cells[2][1].sign == "+"
    assert potentials.cells[2][1].reduced_cost == 52
    assert potentials.extra["gain"] == 52
    assert pivot_record.extra["theta"] > 0
    assert pivot_record.cells[2][1].basic
    assert pivot_record.u is None

    tableau.solve()
    assert records[-1].label == "Optimal solution"
    assert records[-1].value == 743


def test_unbalanced_rejected_by_default():
    with pytest.raises(ConfigurationError):
        Tableau(TransportModel([[4, 6], [5, 3]], [30, 40], [20, 40]))


def test_unbalanced_with_dummy_column():
    model = TransportModel([[4, 6], [5, 3]], [30, 40], [20, 40])
    tableau = Tableau(model, balance="dummy")
    assert tableau.dummy_added == "col"
    assert tableau.n == 3
    assert tableau.model.cols[-1] == "Dummy"
    assert tableau.solve() == 200


def test_unbalanced_with_dummy_row():
    tableau = Tableau(TransportModel([[4, 6], [5, 3]], [30, 20], [20, 50]), balance="dummy")
    assert tableau.dummy_added == "row"
    assert tableau.supply == [30, 20, 20]
    tableau.solve()
    _check_invariants(tableau)


@pytest.mark.parametrize("kwargs", [
    {"matrix": [[1, 2], [3, 4]], "supply": [1], "demand": [1, 0]},
    {"matrix": [[1, 2], [3, 4]], "supply": [1, 1], "demand": [2]},
    {"matrix": [[1, 2], [3]], "supply": [1, 1], "demand": [1, 1]},
    {"matrix": [], "supply": [], "demand": []},
    {"matrix": [[1, 2], [3, 4]], "supply": [-1, 3], "demand": [1, 1]},
    {"matrix": [[1, float("inf")], [3, 4]], "supply": [1, 1], "demand": [1, 1]},
    {"matrix": [[1, "x"], [3, 4]], "supply": [1, 1], "demand": [1, 1]},
    {"matrix": [[1, 2], [3, 4]], "supply": [1, 1], "demand": [1, 1], "rows": ["a"]},
    {"matrix": [[1, 2], [3, 4]], "supply": [float("nan"), 5], "demand": [3, 2]},
    {"matrix": [[1, 2], [3, 4]], "supply": [float("inf"), 5], "demand": [3, 2]},
    {"matrix": [[1, 2], [3, 4]], "supply": [3, 2], "demand": [3, float("-inf")]},
    {"matrix": [[Decimal("NaN")]], "supply": [1], "demand": [1]},
    {"matrix": [[1]], "supply": [Decimal("Infinity")], "demand": [1]},
])
def test_invalid_models(kwargs):
    with pytest.raises(ConfigurationError):
        TransportModel(**kwargs)


def test_invalid_options():
    with pytest.raises(ConfigurationError):
        Tableau(TEXTBOOK, method="hungarian")
    with pytest.raises(ConfigurationError):
        Tableau(TEXTBOOK, balance="ignore")


def test_exact_fractions():
    model = TransportModel([[1, 2], [3, 1]], [Fraction(1, 2), "3/2"], [1, 1])
    tableau = Tableau(model)
    assert tableau.solve() == Fraction(3)
    assert tableau.assignment[1][0] == Fraction(1, 2)


def test_float_inputs():
    model = TransportModel(
        [[float(c) for c in row] for row in TEXTBOOK["matrix"]],
        [float(s) for s in TEXTBOOK["supply"]],
        [float(d) for d in TEXTBOOK["demand"]],
    )
    assert Tableau(model, method="nw").solve() == pytest.approx(743.0)


def test_iteration_limit():
    tableau = Tableau(TEXTBOOK, method="northwest")
    with pytest.raises(IterationLimitError) as excinfo:
        tableau.solve(max_iterations=1)
    assert excinfo.value.iterations == 1
    assert not tableau.is_solved()


def test_independent_tableaus_from_one_model():
    model = TransportModel.from_dict(TEXTBOOK)
    first = Tableau(model, method="nw")
    second = Tableau(model, method="vam")
    first.solve()
    assert second.current_value() == 779
    assert model.matrix == TEXTBOOK["matrix"]
    assert model.supply == TEXTBOOK["supply"]


def test_load_model(tmp_path):
    path = tmp_path / "textbook.json"
    data = dict(TEXTBOOK, rows=["F1", "F2", "F3"], cols=["A", "B", "C", "D"])
    path.write_text(json.dumps(data), encoding="utf-8")

    model = load_model(path)
    tableau = Tableau(model)
    assert tableau.solve() == model.out
    assert tableau.route_name(Coord(3, 2)) == "F3 → D"


def test_from_dict_accepts_costs_key():
    model = TransportModel.from_dict({"costs": [[1]], "supply": [4], "demand": [4]})
    assert Tableau(model).solve() == 4
    with pytest.raises(ConfigurationError):
        TransportModel.from_dict({"supply": [4], "demand": [4]})


def test_shipments_skip_zero_cells():
    tableau = solve_transport(SMALL["matrix"], SMALL["supply"], SMALL["demand"])
    shipped = dict(tableau.shipments())
    assert shipped == {
        Coord(1, 0): 15, Coord(2, 0): 35,
        Coord(0, 1): 20, Coord(1, 1): 20,
        Coord(1, 2): 60,
    }


def test_non_finite_supply_never_reaches_dummy_balancing():
    with pytest.raises(ConfigurationError):
        Tableau(TransportModel([[1, 2], [3, 4]], [float("nan"), 5], [3, 2]), balance="dummy")


def test_decimal_inputs():
    model = TransportModel([[Decimal("1.5")]], [Decimal("2")], [2])
    assert Tableau(model).solve() == 3


def test_dummy_name_does_not_collide_with_user_names():
    model = TransportModel([[4, 6], [5, 3]], [30, 20], [20, 50], rows=["Dummy", "B"])
    tableau = Tableau(model, balance="dummy")
    assert tableau.model.rows == ["Dummy", "B", "Dummy 2"]
    assert tableau.is_dummy(Coord(0, 2))
    assert not tableau.is_dummy(Coord(0, 0))
