"""Views over one stored profile: call graph, flat table, per-function totals.

All functions take :data:`~liveprof.model.CommonProfileData`, typically from
``JsonDataPacker().unpack(...)`` on a stored payload.

Example:
    >>> data = JsonDataPacker().unpack(Path("1700000000.json").read_bytes())
    >>> top_functions(data, limit=5)
"""

from __future__ import annotations

from typing import Dict, List

import networkx as nx
import pandas as pd

from liveprof.model import CommonProfileData, split_key

DATAFRAME_COLUMNS = [
    "key",
    "parent",
    "function",
    "calls",
    "wall_us",
    "cpu_us",
    "memory_bytes",
    "peak_memory_bytes",
]

TOTALS_COLUMNS = ["calls", "inclusive_us", "exclusive_us"]


def to_call_graph(data: CommonProfileData) -> nx.DiGraph:
    """Build a directed call graph.

    Every function becomes a node; each ``parent==>child`` key becomes an edge
    carrying ``calls`` and ``wall_us``. Root keys (no parent) set the same
    attributes on their node instead.

    Args:
        data: Profile data.

    Returns:
        A NetworkX DiGraph with one node per function label.
    """
    graph = nx.DiGraph()
    for key, metric in data.items():
        parent, child = split_key(key)
        graph.add_node(child)
        if parent is None:
            graph.nodes[child]["calls"] = metric.count
            graph.nodes[child]["wall_us"] = metric.wall_time_us
            continue
        graph.add_edge(
            parent, child, calls=metric.count, wall_us=metric.wall_time_us
        )
    return graph


def to_dataframe(data: CommonProfileData) -> pd.DataFrame:
    """Return one row per metric key, sorted by key."""
    rows: List[Dict[str, object]] = []
    for key in sorted(data):
        metric = data[key]
        parent, child = split_key(key)
        rows.append(
            {
                "key": key,
                "parent": parent,
                "function": child,
                "calls": metric.count,
                "wall_us": metric.wall_time_us,
                "cpu_us": metric.cpu_time_us,
                "memory_bytes": metric.memory_bytes,
                "peak_memory_bytes": metric.peak_memory_bytes,
            }
        )
    return pd.DataFrame(rows, columns=DATAFRAME_COLUMNS)


def function_totals(data: CommonProfileData) -> pd.DataFrame:
    """Aggregate edges into per-function totals.

    ``inclusive_us`` is the wall time of all keys ending in the function,
    ``exclusive_us`` subtracts the time of the calls it made. Recursive
    functions are counted once per stack level, as in the edge data itself.

    Returns:
        DataFrame indexed by function label with :data:`TOTALS_COLUMNS`.
    """
    df = to_dataframe(data)
    if df.empty:
        return pd.DataFrame(columns=TOTALS_COLUMNS).rename_axis("function")

    incoming = df.groupby("function")[["calls", "wall_us"]].sum()
    outgoing = df.dropna(subset=["parent"]).groupby("parent")["wall_us"].sum()

    functions = incoming.index.union(outgoing.index)
    totals = pd.DataFrame(index=functions)
    totals["calls"] = incoming["calls"].reindex(functions, fill_value=0)
    totals["inclusive_us"] = incoming["wall_us"].reindex(functions, fill_value=0)
    children = outgoing.reindex(functions, fill_value=0)
    totals["exclusive_us"] = (totals["inclusive_us"] - children).clip(lower=0)
    totals.index.name = "function"
    return totals.astype("int64")


def top_functions(
    data: CommonProfileData, limit: int = 20, sort_by: str = "exclusive_us"
) -> pd.DataFrame:
    """Return the ``limit`` most expensive functions.

    Args:
        data: Profile data.
        limit: Maximum number of rows.
        sort_by: One of :data:`TOTALS_COLUMNS`.

    Raises:
        ValueError: If ``sort_by`` is not a totals column or ``limit`` < 1.
    """
    if sort_by not in TOTALS_COLUMNS:
        raise ValueError(
            f"Unknown sort column '{sort_by}'. Expected one of: "
            + ", ".join(TOTALS_COLUMNS)
        )
    if limit < 1:
        raise ValueError("limit must be >= 1")
    keys = [sort_by] if sort_by == "calls" else [sort_by, "calls"]
    totals = function_totals(data)
    return totals.sort_values(keys, ascending=False, kind="mergesort").head(limit)
