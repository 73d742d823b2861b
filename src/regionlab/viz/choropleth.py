"""
Choropleth rendering of a bound GeometryStore.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt


def plot_choropleth(store, column, title=None, log1p=False, cmap="viridis", ax=None):
    """
    Create a choropleth map of one bound attribute.

    Rows are read through `store.to_geodataframe()`, so each region is
    colored with its own attribute row.

    Parameters

    store : GeometryStore
        Store with the attribute bound (see regionlab.binder.bind)
    column : str
        Attribute column to visualize
    title : str, optional
        Map title, defaults to the column name
    log1p : bool, optional
        If True, apply log(1+x) transformation to the data
    cmap : str, optional
        Matplotlib colormap name
    ax : matplotlib.axes.Axes, optional
        Axes to draw on; a new figure is created if omitted

    Returns

    tuple
        (fig, ax) matplotlib figure and axes objects
    """
    d = store.to_geodataframe()
    if column not in d.columns:
        raise ValueError(f"Column '{column}' is not bound to this store.")

    d[column] = pd.to_numeric(d[column], errors="coerce")
    if log1p:
        d[column] = np.log1p(d[column])

    if ax is None:
        fig, ax = plt.subplots(figsize=(9, 9))
    else:
        fig = ax.figure

    d.plot(
        ax=ax,
        column=column,
        legend=True,
        linewidth=0.35,
        edgecolor="white",
        cmap=cmap,
        missing_kwds={"color": "lightgrey", "label": "No data"},
    )

    ax.set_axis_off()
    ax.set_title(title or column)

    return fig, ax
