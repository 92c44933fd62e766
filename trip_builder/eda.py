import os
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd


def _print_saved(path: str) -> None:
    print(f"[EDA] Saved: {path}")


def trip_map(df_trips: pd.DataFrame, out_path: str = "outputs/figures/trip_map.png", max_legend: int = 20) -> Optional[str]:
    """
    Line plot of every trip in lon/lat, drawn in the trip's color.
    Legend lists at most `max_legend` trips. Returns saved file path or None.
    """
    if df_trips is None or df_trips.empty:
        print("[EDA] trip_map skipped: no trips.")
        return None

    d = os.path.dirname(out_path)
    if d:
        os.makedirs(d, exist_ok=True)

    fig, ax = plt.subplots(figsize=(8, 8))
    for idx, trip in enumerate(df_trips.itertuples(index=False)):
        lons = [c[0] for c in trip.coordinates]
        lats = [c[1] for c in trip.coordinates]
        label = f"{trip.trip_id} ({trip.device_id})" if idx < max_legend else None
        ax.plot(lons, lats, color=trip.color, linewidth=1.5, alpha=0.9, label=label)
        ax.scatter(lons[:1], lats[:1], s=12, color=trip.color)

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title(f"Trips (n={len(df_trips)})")
    ax.legend(fontsize="small", frameon=True)
    ax.set_aspect("equal", adjustable="datalim")

    fig.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    _print_saved(out_path)
    return out_path
