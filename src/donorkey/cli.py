"""Command-line entry point for donor-key encoding.

Usage:
    donorkey table
    donorkey encode households.csv -o keyed.parquet
    donorkey encode households.parquet --config settings.yaml --verbose
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from donorkey.bucketing import FeatureBucketizer
from donorkey.config import MatchSettings, load_price_index
from donorkey.errors import DonorKeyError
from donorkey.keys import (
    KeyDecoder,
    KeyEncoder,
    LowIncomeClassifier,
    key_column,
    low_income_column,
)
from donorkey.place_values import default_place_value_table

logger = logging.getLogger(__name__)


def read_households(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def write_households(data: pd.DataFrame, path: Path) -> None:
    if path.suffix == ".parquet":
        data.to_parquet(path, index=False)
    else:
        data.to_csv(path, index=False)


def run_table(args: argparse.Namespace) -> int:
    print(default_place_value_table().to_frame().to_string())
    return 0


def run_encode(args: argparse.Namespace) -> int:
    settings = MatchSettings()
    price_index = None
    if args.config is not None:
        settings = MatchSettings.from_yaml(args.config)
        price_index = load_price_index(args.config)

    table = default_place_value_table()
    encoder = KeyEncoder(
        table=table,
        bucketizer=FeatureBucketizer(settings=settings, price_index=price_index),
    )
    classifier = LowIncomeClassifier(KeyDecoder(table))

    data = read_households(args.input)
    logger.info("Read %d households from %s", len(data), args.input)

    result = encoder.assign_keys(data)
    key_columns = [key_column(regime) for regime in range(encoder.regime_count)]
    flags = classifier.low_income_matrix(result[key_columns].to_numpy())
    for regime in range(encoder.regime_count):
        result[low_income_column(regime)] = flags[:, regime]

    output = args.output or args.input.with_name(f"{args.input.stem}_keys{args.input.suffix}")
    write_households(result, output)
    logger.info("Wrote donor keys to %s", output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="donorkey",
        description="Donor keys for tax-benefit imputation",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    table = sub.add_parser(
        "table", parents=[common], help="Print place values per feature and regime"
    )
    table.set_defaults(func=run_table)

    encode = sub.add_parser(
        "encode", parents=[common], help="Add donor keys to a household file"
    )
    encode.add_argument("input", type=Path, help="CSV or parquet of households")
    encode.add_argument("--output", "-o", type=Path, default=None)
    encode.add_argument("--config", type=Path, default=None, help="Settings YAML")
    encode.set_defaults(func=run_encode)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (DonorKeyError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
