"""
Loaders for factor model tables and feature set collections.

The enrichment core never touches the filesystem; these loaders exist for
the command-line interface and for scripts that keep a factorization on
disk as plain tables.

Expected Formats:
    - training data: features x samples, first column = feature ids
      (the usual expression-matrix layout; transposed on load)
    - loadings:      features x factors, first column = feature ids
    - factor scores: samples x factors, first column = sample ids
    - feature sets:  .gmt (name, description, members...) or a
      binary membership table (feature sets x features)

Delimiters are inferred from the suffix: .tsv/.tab/.txt are tab separated,
everything else comma separated.

Examples:
    >>> model = load_factor_model(
    ...     Path("expression.csv"), Path("weights.csv"), Path("factors.csv"), view="mRNA"
    ... )
    >>> sets = load_feature_sets(Path("reactome.gmt"))
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from ..core.feature_sets import validate_membership
from ..core.model import FactorModel

__all__ = ['load_table', 'read_gmt', 'load_feature_sets', 'load_factor_model']

logger = logging.getLogger(__name__)

_TAB_SUFFIXES = {".tsv", ".tab", ".txt"}


def _delimiter(path: Path) -> str:
    return "\t" if path.suffix.lower() in _TAB_SUFFIXES else ","


def load_table(path: Path) -> pd.DataFrame:
    """
    Read a delimited table with the first column as index.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    try:
        df = pd.read_csv(path, sep=_delimiter(path), index_col=0)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"Table is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse table {path}: {e}") from e

    if df.empty:
        raise ValueError(f"Table contains no data: {path}")
    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    return df


def read_gmt(path: Path) -> dict[str, list[str]]:
    """
    Read a GMT file: one feature set per line, tab separated as
    ``name<TAB>description<TAB>member<TAB>member...``.
    """
    path = Path(path)
    feature_sets: dict[str, list[str]] = {}
    with open(path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            fields = line.rstrip("\n").split("\t")
            if not fields[0].strip():
                continue
            if len(fields) < 2:
                raise ValueError(f"{path}:{line_no}: expected name and description columns")
            members = [m for m in fields[2:] if m != ""]
            if fields[0] in feature_sets:
                logger.warning(f"Duplicate feature set '{fields[0]}' in {path}; members merged")
                members = feature_sets[fields[0]] + members
            feature_sets[fields[0]] = list(dict.fromkeys(members))
    return feature_sets


def load_feature_sets(path: Path) -> dict[str, list[str]] | pd.DataFrame:
    """
    Load feature sets from a GMT file (mapping) or a binary membership table.

    Only the membership-table form can be used with the permutation test.
    """
    path = Path(path)
    if path.suffix.lower() == ".gmt":
        feature_sets = read_gmt(path)
        logger.info(f"Loaded {len(feature_sets)} feature sets from {path}")
        return feature_sets

    membership = validate_membership(load_table(path))
    logger.info(
        f"Loaded membership matrix from {path}: "
        f"{membership.shape[0]} feature sets x {membership.shape[1]} features"
    )
    return membership


def load_factor_model(
    data_path: Path,
    loadings_path: Path,
    scores_path: Path,
    view: str = "view_0",
) -> FactorModel:
    """
    Build a single-view FactorModel from three tables.

    Args:
        data_path: Training data, features x samples.
        loadings_path: Loadings, features x factors.
        scores_path: Factor scores, samples x factors.
        view: Name of the view.
    """
    data = load_table(data_path).T
    loadings = load_table(loadings_path)
    scores = load_table(scores_path)
    logger.info(
        f"Loaded view '{view}': {data.shape[1]} features x {data.shape[0]} samples, "
        f"{scores.shape[1]} factors"
    )
    return FactorModel(
        training_data={view: data},
        loadings={view: loadings},
        factors=scores,
    )
