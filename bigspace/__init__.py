"""Floating origin grids, a small entity world and transform propagation for very large 3D spaces."""

__version__ = "0.9.2"

__all__ = [
    "bundles",
    "camera",
    "cell",
    "commands",
    "floating_origins",
    "grid",
    "grids",
    "local_origin",
    "math3d",
    "origin_propagation",
    "propagation",
    "world",
]