"""
Visualization of bound region stores.
"""

from .choropleth import plot_choropleth

__all__ = [
    'plot_choropleth',
]
