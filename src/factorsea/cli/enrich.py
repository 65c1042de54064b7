"""
factorsea enrich command - Feature set enrichment analysis on factor loadings.

Tests, for every feature set and every selected factor, whether member
features are more strongly associated with the factor than the remaining
features.

Usage:
    factorsea enrich --data expression.csv --loadings weights.csv \\
        --scores factors.csv --feature-sets reactome.gmt --output results/fsea
"""

import argparse
import logging
from pathlib import Path

from factorsea.cli._validators import _nonzero_int, _positive_int, _probability
from factorsea.stats.types import (
    FeatureStatistic,
    PAdjustMethod,
    SetStatistic,
    StatisticalTest,
    Transformation,
)

ENRICHMENT_OPTIONS = (
    'feature_statistic',
    'set_statistic',
    'statistical_test',
    'transformation',
    'min_size',
    'n_permutations',
    'n_jobs',
    'p_adjust_method',
    'alpha',
    'seed',
)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the enrich subcommand."""
    parser = subparsers.add_parser(
        "enrich",
        help="Feature set enrichment analysis on factor loadings",
        description=(
            "Competitive feature set enrichment on the factors of a fitted "
            "factor model. Feature sets are compared against all remaining "
            "features with a parametric or permutation test."
        )
    )

    # Input/output
    parser.add_argument("--data", type=Path, default=None,
                        help="Training data CSV/TSV (features x samples)")
    parser.add_argument("--loadings", type=Path, default=None,
                        help="Loadings CSV/TSV (features x factors)")
    parser.add_argument("--scores", type=Path, default=None,
                        help="Factor scores CSV/TSV (samples x factors)")
    parser.add_argument("--feature-sets", type=Path, default=None,
                        help="Feature sets: .gmt file or binary membership table (sets x features)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output directory for results")
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML or JSON config file (explicit CLI arguments take precedence)")

    # Selection
    parser.add_argument("--view", default="view_0",
                        help="Name given to the view (default: view_0)")
    parser.add_argument("--factors", nargs="+", default=None,
                        help="Factor names or 0-based positions to test (default: all)")

    # Statistics
    parser.add_argument("--feature-statistic", choices=[m.value for m in FeatureStatistic],
                        default=None, help="Feature statistic (default: loading)")
    parser.add_argument("--set-statistic", choices=[m.value for m in SetStatistic],
                        default=None, help="Set statistic (default: mean.diff)")
    parser.add_argument("--statistical-test", choices=[m.value for m in StatisticalTest],
                        default=None, help="Statistical test (default: parametric)")
    parser.add_argument("--transformation", choices=[m.value for m in Transformation],
                        default=None, help="Feature statistic transformation (default: abs.value)")
    parser.add_argument("--min-size", type=_positive_int, default=None,
                        help="Minimum feature set size after overlap (default: 10)")

    # Permutation test
    parser.add_argument("--n-permutations", type=_positive_int, default=None,
                        help="Number of permutations (default: 1000)")
    parser.add_argument("--n-jobs", type=_nonzero_int, default=None,
                        help="Parallel workers for permutations, -1 = all CPUs (default: 1)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for permutations")

    # Multiple testing
    parser.add_argument("--p-adjust-method", choices=[m.value for m in PAdjustMethod],
                        default=None, help="Multiple testing correction (default: BH)")
    parser.add_argument("--alpha", type=_probability, default=None,
                        help="Adjusted p-value threshold for significant sets (default: 0.1)")

    parser.set_defaults(func=run_enrich)


def _parse_factors(factors):
    if not factors:
        return "all"
    if all(isinstance(f, int) or str(f).isdigit() for f in factors):
        return [int(f) for f in factors]
    return [str(f) for f in factors]


def run_enrich(args: argparse.Namespace) -> int:
    """Execute the enrich command."""
    from factorsea.enrichment import EnrichmentConfig, run_enrichment_analysis
    from factorsea.exceptions import FactorSEAError
    from factorsea.io.loaders import load_factor_model, load_feature_sets
    from factorsea.io.writers import write_results

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    logger = logging.getLogger(__name__)

    # Load and merge config file if provided
    if args.config:
        from factorsea.cli.config import load_config, merge_config_with_args

        logger.info(f"Loading configuration from: {args.config}")
        try:
            config = load_config(args.config)
            args = merge_config_with_args(config, args, getattr(args, 'raw_args', None))
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Config file error: {e}")
            return 1

    # Validate required arguments (after config merge)
    for name in ('data', 'loadings', 'scores', 'feature_sets', 'output'):
        if getattr(args, name, None) is None:
            logger.error(f"--{name.replace('_', '-')} is required (via CLI or config file)")
            return 1

    options = {
        name: getattr(args, name)
        for name in ENRICHMENT_OPTIONS
        if getattr(args, name, None) is not None
    }

    try:
        enrichment_config = EnrichmentConfig.from_dict(options)
        model = load_factor_model(args.data, args.loadings, args.scores, view=args.view)
        feature_sets = load_feature_sets(args.feature_sets)
        result = run_enrichment_analysis(
            model,
            view=args.view,
            feature_sets=feature_sets,
            factors=_parse_factors(args.factors),
            config=enrichment_config,
        )
        paths = write_results(result, args.output)
    except (FileNotFoundError, ValueError, FactorSEAError) as e:
        logger.error(str(e))
        return 1

    print("=" * 70)
    print("  Feature Set Enrichment Summary")
    print("=" * 70)
    print(f"View: {result.view}")
    print(f"Feature sets tested: {len(result.feature_sets)}")
    print(f"Statistical test: {result.config.statistical_test.value}")
    for factor, sets in result.significant_sets.items():
        print(f"  {factor}: {len(sets)} significant (adjusted p <= {result.alpha})")
    print(f"Results: {paths['summary'].parent}")
    return 0
