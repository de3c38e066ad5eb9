"""Variant Recoder.

Recodes variant identifiers (rsIDs, HGVS, SPDI, VCF-style strings) into all
alternative representations known to the Ensembl Variant Effect Predictor, and
merges sharded VEP output into a single indexed VCF.

Key features:
- Runs VEP directly or replays existing VEP JSON output
- Reports one result per input and allele, in input order
- Field selection for IDs, HGVS genomic/coding/protein notation, SPDI and VCF strings
- JSON output, or a flat parquet table
- Concatenation of VEP VCF shards with TBI or CSI indexing
"""

import argparse
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

from varrecode import DEFAULT_FIELDS
from varrecode.config import config_from_params, load_params
from varrecode.engine import JsonOutputEngine, VepCommandEngine
from varrecode.merge import INDEX_TYPES, ShardMerger
from varrecode.recoder import VariantRecoder
from varrecode.utils.logging import log_command, setup_logging
from varrecode.utils.output import OUTPUT_FORMATS, write_results


def _version() -> str:
    try:
        return pkg_version("varrecode")
    except PackageNotFoundError:
        from varrecode import __version__
        return __version__


def _build_engine(args, params: dict):
    """Pick the annotation engine for the recode command."""
    if args.vep_json:
        return JsonOutputEngine(source=Path(args.vep_json), warning_file=args.warning_file)

    vep_cmd = args.vep_cmd or params.get("vep_cmd") or "vep"
    return VepCommandEngine(
        vep_cmd=vep_cmd,
        input_file=Path(args.input_file) if args.input_file else None,
        keep_files=args.debug,
    )


def _run_recode(args, logger) -> None:
    params = load_params(args.params) if args.params else {}
    config = config_from_params(params, fields=args.fields, vcf_string=args.vcf_string)
    logger.info(f"Recoding fields: {', '.join(config.fields)}")

    recoder = VariantRecoder(_build_engine(args, params), config=config)
    if args.i:
        results = recoder.recode("\n".join(args.i))
    else:
        results = recoder.recode_all()

    write_results(results, args.output, fmt=args.format)


def _run_merge(args, logger) -> None:
    logger.info(f"Merging {len(args.vcf)} shards into {args.output}")
    merger = ShardMerger(
        shards=args.vcf,
        output_dir=args.output,
        index_type=args.index_type,
        prefix=args.prefix,
        input_name=args.input_name,
        index_files=args.index or (),
    )
    output = merger.merge()
    print(output)


def main() -> None:
    """Main entry point for the varrecode command-line interface.

    Parses command-line arguments and executes the appropriate command.
    """
    parser = argparse.ArgumentParser(
        description="Recode variant identifiers into IDs, HGVS, SPDI and VCF notation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=_version(),
        help="Show version and exit",
    )

    # Create parent parser for shared arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v for INFO, -vv for DEBUG",
    )
    parent_parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="(optional) Also write log messages to this file",
    )

    subparsers = parser.add_subparsers(
        dest="command", required=True, title="Available commands", metavar="command"
    )

    # recode command
    recode_parser = subparsers.add_parser(
        "recode",
        help="Recode variant identifiers",
        parents=[parent_parser],
        description="Recode variant identifiers by running VEP or by reading existing VEP JSON output.",
    )
    source_group = recode_parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument(
        "-i",
        "--id",
        dest="i",
        nargs="+",
        metavar="ID",
        help="Variant identifier(s), e.g. rs699 or NM_000029.4:c.803T>C",
    )
    source_group.add_argument(
        "--input-file",
        dest="input_file",
        metavar="FILE",
        help="File with one variant identifier per line",
    )
    source_group.add_argument(
        "--vep-json",
        dest="vep_json",
        metavar="FILE",
        help="Existing VEP JSON output (one object per line, optionally gzipped)",
    )
    recode_parser.add_argument(
        "--warning-file",
        dest="warning_file",
        metavar="FILE",
        help="(optional) VEP warning file belonging to --vep-json",
    )
    recode_parser.add_argument(
        "--fields",
        dest="fields",
        default=None,
        help=f"(optional) Comma-separated fields to report (default: {DEFAULT_FIELDS})",
    )
    recode_parser.add_argument(
        "--vcf-string",
        dest="vcf_string",
        action="store_true",
        default=False,
        help="(optional) Also report the VCF representation of each allele",
    )
    recode_parser.add_argument(
        "-y",
        "--yaml",
        dest="params",
        required=False,
        metavar="YAML",
        help="(optional) Params YAML with vep_cmd, species, assembly, cache_dir, flags and options",
    )
    recode_parser.add_argument(
        "--vep-cmd",
        dest="vep_cmd",
        default=None,
        help="(optional) VEP executable (default: vep, or vep_cmd from the params YAML)",
    )
    recode_parser.add_argument(
        "-o",
        "--output",
        dest="output",
        default=None,
        metavar="FILE",
        help="(optional) Output file (default: stdout)",
    )
    recode_parser.add_argument(
        "--format",
        dest="format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="(optional) Output format (default: json)",
    )
    recode_parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="(optional) Keep the VEP work directory",
    )

    # merge-shards command
    merge_parser = subparsers.add_parser(
        "merge-shards",
        help="Merge sharded VEP VCF output",
        parents=[parent_parser],
        description="Concatenate bgzipped VCF shards in file name order and index the result.",
    )
    merge_parser.add_argument(
        "--vcf",
        dest="vcf",
        nargs="+",
        required=True,
        metavar="VCF",
        help="Shard VCF files (bgzipped and indexed)",
    )
    merge_parser.add_argument(
        "--index",
        dest="index",
        nargs="+",
        metavar="INDEX",
        help="(optional) Index files of the shards, if not next to them",
    )
    merge_parser.add_argument(
        "-o",
        "--output",
        dest="output",
        required=True,
        metavar="DIR",
        help="Output directory",
    )
    merge_parser.add_argument(
        "--index-type",
        dest="index_type",
        choices=INDEX_TYPES,
        default="tbi",
        help="(optional) Index type of the merged file (default: tbi)",
    )
    name_group = merge_parser.add_mutually_exclusive_group()
    name_group.add_argument(
        "--prefix",
        dest="prefix",
        help="(optional) Output name prefix, the file is named <prefix>_VEP.vcf.gz",
    )
    name_group.add_argument(
        "--input-name",
        dest="input_name",
        help="(optional) Original input file; its name without extensions is used as prefix",
    )

    args = parser.parse_args(args=None if sys.argv[1:] else ["--help"])
    logger = setup_logging(
        args.verbose,
        log_file=Path(args.log_file) if args.log_file else None,
        stream=sys.stderr,
    )
    log_command(logger)

    try:
        if args.command == "recode":
            _run_recode(args, logger)
        elif args.command == "merge-shards":
            _run_merge(args, logger)

    except Exception as e:
        logger.error(f"Error during execution: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
