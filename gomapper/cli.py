"""Command line entry point: generate struct mapping functions for a Go package."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from gomapper.generator import GenerateError, GenerationData, Mode, PairData, write_file
from gomapper.loader import LoaderError, Package, load, lookup_struct
from gomapper.matcher import MatchConfig, MatchError, match

DEFAULT_OUTPUT = "mapper_gen.go"
USAGE_LINES = (
    "usage: gomapper -src Type -dst Type",
    "       gomapper -pairs Src:Dst[,Src:Dst,...]",
)


@dataclass(frozen=True)
class TypePair:
    """A source type and the destination type it is mapped to."""

    src: str
    dst: str


class UsageError(Exception):
    """Raised when the command line does not name the types to map."""

    def __init__(self, message: str, show_usage: bool = False) -> None:
        super().__init__(message)
        self.show_usage = show_usage


def parse_type_pairs(pairs: str, src: str, dst: str) -> list[TypePair]:
    """Turn the ``-pairs`` or ``-src``/``-dst`` options into a list of type pairs."""
    if pairs:
        result: list[TypePair] = []
        for item in pairs.split(","):
            parts = item.strip().split(":", 1)
            if len(parts) != 2 or not parts[0] or not parts[1]:
                raise UsageError(f"invalid pair format {item!r}; expected Src:Dst")
            result.append(TypePair(parts[0], parts[1]))
        return result
    if src and dst:
        return [TypePair(src, dst)]
    raise UsageError("\n".join(USAGE_LINES), show_usage=True)


def expand_bidirectional(pairs: Iterable[TypePair]) -> list[TypePair]:
    """Follow every pair with its reverse."""
    expanded: list[TypePair] = []
    for pair in pairs:
        expanded += [pair, TypePair(pair.dst, pair.src)]
    return expanded


def match_all(
    package: Package,
    pairs: Iterable[TypePair],
    tag_key: str,
    strict: bool,
    case_insensitive: bool,
    verbose: bool,
) -> list[PairData]:
    """Match the fields of every pair against the already loaded package."""
    config = MatchConfig(
        tag_key=tag_key,
        strict=strict,
        case_insensitive=case_insensitive,
        verbose=verbose,
    )
    result: list[PairData] = []
    for pair in pairs:
        try:
            src_info = lookup_struct(package, pair.src)
        except LoaderError as exc:
            raise LoaderError(f"source type: {exc}") from exc
        try:
            dst_info = lookup_struct(package, pair.dst)
        except LoaderError as exc:
            raise LoaderError(f"destination type: {exc}") from exc
        try:
            matched = match(src_info, dst_info, config)
        except MatchError as exc:
            raise MatchError(f"matching {pair.src} → {pair.dst}: {exc}") from exc
        result.append(
            PairData(
                src_type=pair.src,
                dst_type=pair.dst,
                mappings=matched.mappings,
                unmapped=matched.unmapped,
                nested_dst_assignments=matched.nested_dst_assignments,
            )
        )
    return result


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gomapper",
        description="Generate type-safe struct mapping functions from Go struct definitions.",
        allow_abbrev=False,
    )
    parser.add_argument("-src", "--src", default="", help="source type name")
    parser.add_argument("-dst", "--dst", default="", help="destination type name")
    parser.add_argument(
        "-pairs", "--pairs", default="",
        help="comma-separated Src:Dst pairs (alternative to -src/-dst)",
    )
    parser.add_argument("-output", "--output", default=DEFAULT_OUTPUT, help="output file name")
    parser.add_argument(
        "-mode", "--mode", default=Mode.FUNC.value,
        help='generation mode: "func" (default), "register", or "both"',
    )
    parser.add_argument(
        "-bidirectional", "--bidirectional", action="store_true",
        help="generate both S→D and D→S mappings",
    )
    parser.add_argument("-tag", "--tag", default="map", help="struct tag key for field renaming")
    parser.add_argument(
        "-strict", "--strict", action="store_true",
        help="fail if any destination field is unmapped",
    )
    parser.add_argument(
        "-ci", "--ci", action="store_true", help="case-insensitive field name matching"
    )
    parser.add_argument(
        "-nil-safe", "--nil-safe", dest="nil_safe", action="store_true",
        help="generate nil checks for pointer dereferences",
    )
    parser.add_argument(
        "-v", "--verbose", dest="verbose", action="store_true",
        help="verbose: print field matching decisions",
    )
    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the generator in the current directory; return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        pairs = parse_type_pairs(args.pairs, args.src, args.dst)
    except UsageError as exc:
        print(exc, file=sys.stderr)
        if exc.show_usage:
            parser.print_help(sys.stderr)
        return 1

    if args.bidirectional:
        pairs = expand_bidirectional(pairs)

    try:
        package = load(os.getcwd())
    except (LoaderError, OSError) as exc:
        return _fail(f"loading package: {exc}")

    try:
        gen_pairs = match_all(package, pairs, args.tag, args.strict, args.ci, args.verbose)
    except (LoaderError, MatchError) as exc:
        return _fail(str(exc))

    try:
        mode = Mode(args.mode)
    except ValueError:
        return _fail(f'invalid -mode {args.mode!r}; must be "register", "func", or "both"')

    data = GenerationData(pkg_name=package.name, pairs=gen_pairs, nil_safe=args.nil_safe)
    try:
        write_file(data, mode, args.output)
    except (GenerateError, OSError) as exc:
        return _fail(f"generating: {exc}")

    if args.verbose:
        print(f"wrote {args.output} ({len(gen_pairs)} pair(s))")
    return 0