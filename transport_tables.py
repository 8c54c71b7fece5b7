"""
Transportation Problem Solver - Tables and sample data

pandas views of a tableau and its step records, plus a numpy generator
for random balanced problems.
"""

import numpy as np
import pandas as pd


def allocation_frame(tableau):
    """Get allocation matrix as pandas DataFrame, with Supply column and Demand row"""
    rows, cols = tableau.model.rows, tableau.model.cols
    data = []
    for i in range(tableau.m):
        data.append(list(tableau.assignment[i]) + [tableau.supply[i]])
    data.append(list(tableau.demand) + [None])

    return pd.DataFrame(data, index=rows + ["Demand"], columns=cols + ["Supply"])


def routes_frame(tableau):
    """Get active routes as pandas DataFrame, most expensive first"""
    routes = []
    for coord, qty in tableau.shipments():
        if tableau.is_dummy(coord):
            continue
        unit_cost = tableau.cost[coord.y][coord.x]
        routes.append({
            'Route': tableau.route_name(coord),
            'Units': qty,
            'Cost/Unit': unit_cost,
            'Total Cost': qty * unit_cost,
        })

    if routes:
        df = pd.DataFrame(routes)
        df = df.sort_values('Total Cost', ascending=False, kind='stable')
        return df.reset_index(drop=True)
    return pd.DataFrame(columns=['Route', 'Units', 'Cost/Unit', 'Total Cost'])


def record_frame(record, field='quantity', rows=None, cols=None):
    """One attribute of every cell of a StepRecord as a DataFrame"""
    data = [[getattr(cell, field) for cell in row] for row in record.cells]
    return pd.DataFrame(data, index=rows, columns=cols)


def _split_total(total, parts):
    """Random integer shares of total, rounding slack left on the first share"""
    weights = np.random.randint(50, 120, size=parts)
    shares = (weights / weights.sum() * total).astype(int)
    shares[0] += total - shares.sum()
    return shares.tolist()


def generate_sample_data(n_sources=5, n_destinations=5, seed=42):
    """
    Random balanced transportation problem

    Costs are integers in [10, 35); supply and demand both split the
    same random total, so the model needs no dummy line.

    Returns:
        tuple: (cost, supply, demand) as plain Python lists
    """
    np.random.seed(seed)
    cost = np.random.randint(10, 35, size=(n_sources, n_destinations)).tolist()
    total = int(np.random.randint(700, 1000))
    return cost, _split_total(total, n_sources), _split_total(total, n_destinations)
