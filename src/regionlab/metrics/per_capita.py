import numpy as np
import pandas as pd


def calculate_rate_per_capita(table, count_col, population_col, per=1000, rate_col=None):
    """
    Calculate a per-region rate of events per `per` inhabitants.

    Args:
        table (pandas.DataFrame): Region table with count and population columns.
        count_col (str): Column with the event count (or weighted sum).
        population_col (str): Column with the region population.
        per (float): Rate denominator, e.g. 1000 for "per 1,000 people".
        rate_col (str, optional): Output column. Defaults to '<count_col>_per_<per>'.

    Returns:
        pandas.DataFrame: A copy of `table` with the rate column added, row order unchanged.
    """
    for col in (count_col, population_col):
        if col not in table.columns:
            raise ValueError(f"I need a '{col}' column to calculate the rate, but I couldn't find one.")

    rate_col = rate_col or f"{count_col}_per_{per:g}"
    counts = pd.to_numeric(table[count_col], errors="coerce").fillna(0.0).astype(float)
    people = pd.to_numeric(table[population_col], errors="coerce").astype(float)

    out = table.copy()
    with np.errstate(divide="ignore", invalid="ignore"):
        rate = counts / people * per

    # No people: infinite burden if there were events, otherwise nothing to report
    empty = people == 0
    rate[empty] = np.where(counts[empty] > 0, np.inf, 0.0)
    out[rate_col] = rate
    return out
