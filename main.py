#!/usr/bin/env python3
"""
XG File Extractor - Main Entry Point

Splits eXtreme Gammon (.xg) game files into their component segments:
the Game Data Format header, the thumbnail image and the files stored in
the embedded zlib archive (game header, game data, rollouts, comments).
"""

import argparse
import json
import sys
from pathlib import Path

from src.xgfile.config import DEFAULT_CONFIG_PATH, ExtractConfig, load_config


def positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_config(args) -> ExtractConfig:
    """Load YAML config and apply command line overrides."""
    config = load_config(args.config)
    if getattr(args, 'output_dir', None):
        config.output_dir = args.output_dir
    if getattr(args, 'block_size', None):
        config.block_size = args.block_size
    if args.verbose:
        config.verbose = True
    return config


def cmd_extract(args) -> int:
    """Extract all segments of an XG file."""
    from src.xgfile import XGImport, XGFileError

    config = build_config(args)
    importer = XGImport(args.input_file, config)

    try:
        segments = importer.get_file_segments()
        for segment in segments:
            print(f"Extracted segment: {segment.filename}")

        if config.output_dir:
            written = importer.export(segments)
            print(f"\nSaved {len(written)} segments to {config.output_dir}")
    except (XGFileError, OSError) as e:
        print(f"Error extracting file segments: {e}", file=sys.stderr)
        importer.release()
        return 1

    importer.release(remove_archive_files=not args.keep)
    return 0


def cmd_info(args) -> int:
    """Show header metadata and the archive registry."""
    from src.xgfile import GameDataFormatHeader, ZlibArchive, XGFileError

    config = build_config(args)

    try:
        with open(args.input_file, 'rb') as f:
            header = GameDataFormatHeader.from_stream(f, args.input_file)

        print(f"File:       {args.input_file}")
        print(f"GUID:       {header.game_guid}")
        print(f"Game name:  {header.game_name}")
        print(f"Save name:  {header.save_name}")
        print(f"Level name: {header.level_name}")
        print(f"Comments:   {header.comments}")
        print(f"Thumbnail:  {header.thumbnail_size} bytes at {header.thumbnail_offset}")

        with ZlibArchive(args.input_file, block_size=config.block_size) as archive:
            rec = archive.arc_rec
            print(f"\nArchive: {rec.file_count} files, version {rec.version}, "
                  f"registry {'compressed' if rec.compressed_registry else 'raw'}")
            for filerec in archive:
                checksum = archive.compute_checksum(filerec)
                print(f"  {filerec.name:<16} size={filerec.osize:<10} "
                      f"stored={filerec.csize:<10} "
                      f"{'zlib' if filerec.compressed else 'raw '} "
                      f"crc={filerec.crc:08x} computed={checksum:08x}")
    except (XGFileError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def cmd_parse(args) -> int:
    """Parse XG files and show summary."""
    from tqdm import tqdm
    from src.xgfile import XGReader, XGFileError

    config = build_config(args)
    path = Path(args.path)
    xg_files = sorted(path.glob("*.xg")) if path.is_dir() else [path]

    if not xg_files:
        print(f"No XG files found in {path}")
        return 1

    results = []
    failures = 0
    for xg_file in tqdm(xg_files, desc="Parsing", disable=len(xg_files) < 2):
        try:
            reader = XGReader(str(xg_file), config)
            match = reader.read()
            results.append({
                "file": str(xg_file),
                "data": reader.to_dict()
            })
            tqdm.write(f"  {xg_file.name}: {match.player1} vs {match.player2}, "
                       f"{len(match.games)} games")
        except (XGFileError, OSError) as e:
            failures += 1
            tqdm.write(f"  {xg_file.name}: Error - {e}")

    if args.output_file:
        with open(args.output_file, 'w') as f:
            json.dump(results, f, indent=2)
        print(f"\nParsed data saved to {args.output_file}")

    return 1 if failures else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="XG game file extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List extracted segments
  python main.py extract match.xg

  # Extract and keep copies of every segment
  python main.py extract match.xg --output-dir out/

  # Show header and archive registry
  python main.py info match.xg

  # Summarize every match in a directory
  python main.py parse data/xg_files --output-file parsed.json
        """
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("-v", "--verbose", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    extract_parser = subparsers.add_parser("extract", help="Extract file segments")
    extract_parser.add_argument("input_file")
    extract_parser.add_argument("--output-dir", default=None)
    extract_parser.add_argument("--block-size", type=positive_int, default=None)
    extract_parser.add_argument("--keep", action="store_true",
                                help="Leave extracted archive files in the temp directory")

    info_parser = subparsers.add_parser("info", help="Show header and registry")
    info_parser.add_argument("input_file")

    parse_parser = subparsers.add_parser("parse", help="Parse XG files")
    parse_parser.add_argument("path")
    parse_parser.add_argument("--output-file", default=None)

    args = parser.parse_args(argv)

    if args.command == "extract":
        return cmd_extract(args)
    elif args.command == "info":
        return cmd_info(args)
    elif args.command == "parse":
        return cmd_parse(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
