"""
Writers for enrichment results.

Output Files (in ``output_dir``):
    - feature_statistics.csv   features x factors
    - set_statistics.csv       feature sets x factors
    - pvalues.csv              feature sets x factors
    - adjusted_pvalues.csv     feature sets x factors
    - summary.csv              long format, one row per (feature set, factor)
    - significant_sets.json    factor -> significant feature sets, plus config

JSON is written to a temporary file in the same directory and moved into
place, so readers never see a partially written file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..enrichment import EnrichmentResult

__all__ = ['atomic_write_json', 'write_results']

logger = logging.getLogger(__name__)


def atomic_write_json(path: Path, data: Any, *, indent: int = 2) -> None:
    """Write ``data`` as JSON via temp file + ``os.replace``."""
    path = Path(path)
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=path.parent, suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            json.dump(data, tmp, indent=indent)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def write_results(result: EnrichmentResult, output_dir: Path) -> dict[str, Path]:
    """
    Write every matrix of an enrichment result plus a JSON summary.

    Returns:
        Mapping of artifact name -> written path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "feature_statistics": output_dir / "feature_statistics.csv",
        "set_statistics": output_dir / "set_statistics.csv",
        "pvalues": output_dir / "pvalues.csv",
        "adjusted_pvalues": output_dir / "adjusted_pvalues.csv",
        "summary": output_dir / "summary.csv",
        "significant_sets": output_dir / "significant_sets.json",
    }
    result.feature_statistics.to_csv(paths["feature_statistics"])
    result.set_statistics.to_csv(paths["set_statistics"])
    result.pvalues.to_csv(paths["pvalues"])
    result.adjusted_pvalues.to_csv(paths["adjusted_pvalues"])
    result.summary().to_csv(paths["summary"], index=False)
    atomic_write_json(paths["significant_sets"], {
        "view": result.view,
        "config": result.config.to_dict(),
        "significant_sets": {str(k): list(v) for k, v in result.significant_sets.items()},
    })

    logger.info(f"Wrote enrichment results to {output_dir}")
    return paths
