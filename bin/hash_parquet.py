#!/usr/bin/env python3
"""
Compute LSH signatures for one column of a Parquet file.

Usage:
    python bin/hash_parquet.py <input.parquet> <output.parquet> --column <name> \
        --function {min,min32,euclidean,euclidean32} [options]

Examples:
    python bin/hash_parquet.py people.parquet people_sig.parquet --column name \
        --function min --ngram-width 2 --band-count 3 --band-size 2 --seed 123

    python bin/hash_parquet.py emb.parquet emb_sig.parquet --column vector \
        --function euclidean --bucket-width 0.5 --band-count 2 --band-size 3
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List

# Ensure lshsig is in path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from lshsig import signatures_from_parquet
from lshsig._config.config import DEFAULT_BATCH_SIZE, DEFAULT_SEED
from lshsig.io.parquet import parquet_column_type, write_signature_parquet

logger = logging.getLogger("lshsig.bin.hash_parquet")


def function_params(args: argparse.Namespace) -> List[Any]:
    """Positional fixed parameters for the selected signature function."""
    if args.function.startswith("euclidean"):
        if args.bucket_width is None:
            raise SystemExit("--bucket-width is required for euclidean functions")
        return [args.bucket_width, args.band_count, args.band_size, args.seed]
    if args.ngram_width is None:
        # shingle form: the column holds lists of tokens
        return [args.band_count, args.band_size, args.seed]
    return [args.ngram_width, args.band_count, args.band_size, args.seed]


def run(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    output_path = Path(args.output)
    if output_path.exists() and not args.overwrite:
        print(f"Error: Output file '{output_path}' already exists (use --overwrite).")
        return 1

    bit_width = 32 if args.function.endswith("32") else 64
    params = function_params(args)

    try:
        column_type = parquet_column_type(input_path, args.column)
        rows = write_signature_parquet(
            output_path,
            signatures_from_parquet(
                input_path, args.column, args.function, *params, batch_size=args.batch_size
            ),
            column=args.column,
            column_type=column_type,
            bit_width=bit_width,
        )
    except (ValueError, TypeError, FileNotFoundError, ImportError) as e:
        logger.error(f"Failed to hash '{input_path}': {e}")
        output_path.unlink(missing_ok=True)
        return 1

    print(f"Wrote {rows} rows with {args.band_count}-band signatures to '{output_path}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute LSH signatures for a Parquet column.")
    parser.add_argument("input", help="Path to the input .parquet file")
    parser.add_argument("output", help="Path to the output .parquet file")
    parser.add_argument("--column", required=True, help="Column to hash")
    parser.add_argument(
        "--function",
        default="min",
        choices=["min", "min32", "euclidean", "euclidean32"],
        help="Signature function (default: min)",
    )
    parser.add_argument("--ngram-width", type=int, default=None,
                        help="Character n-gram width; omit to hash token-list columns")
    parser.add_argument("--bucket-width", type=float, default=None,
                        help="Bucket width for euclidean functions")
    parser.add_argument("--band-count", type=int, required=True)
    parser.add_argument("--band-size", type=int, required=True)
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument("--overwrite", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    sys.exit(run(args))
