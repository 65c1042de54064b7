"""
factorsea CLI - feature set enrichment analysis on latent factors.

Commands:
    factorsea enrich   - Test feature sets for enrichment on factor loadings
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for factorsea."""
    parser = argparse.ArgumentParser(
        prog="factorsea",
        description="Feature set enrichment analysis on latent factors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  enrich        Test feature sets for enrichment on factor loadings

Examples:
  factorsea enrich --data expression.csv --loadings weights.csv --scores factors.csv \\
      --feature-sets reactome.gmt --output results/fsea
  factorsea enrich --config fsea.yaml --statistical-test permutation --n-jobs 4
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from factorsea.cli import enrich
    enrich.register_parser(subparsers)

    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    parsed_args.raw_args = list(args) if args is not None else sys.argv[1:]
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
