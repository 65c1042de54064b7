"""Table and feature set loaders, and result writers."""

from factorsea.io.loaders import load_factor_model, load_feature_sets, load_table, read_gmt
from factorsea.io.writers import atomic_write_json, write_results

__all__ = [
    "load_table",
    "read_gmt",
    "load_feature_sets",
    "load_factor_model",
    "atomic_write_json",
    "write_results",
]
