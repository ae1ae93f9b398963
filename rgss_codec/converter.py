#!/usr/bin/env python3
"""
RGSS Data Converter

Converts engine data files to YAML documents and back.

Modes:
1. One file:         -i Data/Map001.rxdata -o YAML/Map001.yaml
2. Paired lists:     -I a.rxdata,b.rxdata -O a.yaml,b.yaml
3. Whole directory:  -S Data -D YAML -T .yaml

The direction comes from the file extensions: a data extension
(.rxdata/.rvdata/.rvdata2) on one side and .yaml (or no extension) on the
other. Each destination is written to a temporary file first and only moved
into place once the whole file converted.

Usage:
    python -m rgss_codec -S Data -D YAML -T .yaml --version ace
"""

import os
import sys
import argparse
import tempfile
import time
from collections import Counter
from pathlib import Path
from typing import List, Optional, Sequence, Union

from rgss_codec.config import ConversionConfig
from rgss_codec.constants import DATA_EXTENSIONS, DOODADS_POSTFIX, SCRIPTS_BASE, YAML_EXT
from rgss_codec.document import dump_document, load_document
from rgss_codec.parsers import load_data
from rgss_codec.serialization import dump_data
from rgss_codec.utils import log, logDebug, logError, init_logging, print_summary

PathLike = Union[str, Path]

TO_YAML = 'to_yaml'
TO_DATA = 'to_data'


def conversion_direction(src: PathLike, dest: PathLike) -> str:
    """
    Work out which way a file is converted.

    Returns:
        TO_YAML or TO_DATA

    Raises:
        ValueError: The extension pair is not a data <-> YAML conversion
    """
    src_ext = Path(src).suffix.lower()
    dest_ext = Path(dest).suffix.lower()

    if src_ext in DATA_EXTENSIONS and dest_ext in (YAML_EXT, ''):
        return TO_YAML
    if src_ext in (YAML_EXT, '') and dest_ext in DATA_EXTENSIONS:
        return TO_DATA
    raise ValueError(f"Unsupported conversion from '{src_ext}' to '{dest_ext}'")


def write_atomic(dest: Path, payload: bytes):
    """Write payload to dest through a temporary file in the same directory."""
    fd, temp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(payload)
        os.replace(temp_path, dest)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def convert_file(src: Path, dest: Path, config: ConversionConfig):
    """Convert one file; the destination directory must exist."""
    direction = conversion_direction(src, dest)
    policy = config.policy()
    start = time.time()

    with open(src, 'rb') as f:
        raw = f.read()

    if direction == TO_YAML:
        root = load_data(raw, policy, source=src.name)
        text = dump_document(root, policy, max_row_width=config.max_row_width, line_width=config.line_width)
        payload = text.encode('utf-8')
    else:
        root = load_document(raw.decode('utf-8-sig'), policy, source=src.name)
        payload = dump_data(root, policy)

    write_atomic(dest, payload)
    logDebug(f"  {src.name}: {len(raw):,} -> {len(payload):,} bytes in {time.time() - start:.2f}s")


def _check_source(src: Path):
    if not src.is_file():
        raise FileNotFoundError(f"Source file not found: {src}")


def convert(src: PathLike, dest: PathLike, config: Optional[ConversionConfig] = None):
    """
    Convert a single file.

    Args:
        src: Data file or YAML document
        dest: Output path; its directory is created when missing
        config: Conversion options (defaults to xp)
    """
    config = config or ConversionConfig()
    src, dest = Path(src), Path(dest)
    _check_source(src)
    dest.parent.mkdir(parents=True, exist_ok=True)

    log(f"{src} -> {dest}")
    convert_file(src, dest, config)


def convert_list(srcs: Sequence[PathLike], dests: Sequence[PathLike],
                 config: Optional[ConversionConfig] = None):
    """
    Convert files pairwise, stopping at the first failure.

    Raises:
        ValueError: The two lists differ in length
    """
    if len(srcs) != len(dests):
        raise ValueError(f"Source file count ({len(srcs)}) does not match destination file count ({len(dests)})")

    config = config or ConversionConfig()
    for i, (src, dest) in enumerate(zip(srcs, dests), 1):
        src, dest = Path(src), Path(dest)
        _check_source(src)
        dest.parent.mkdir(parents=True, exist_ok=True)
        log(f"[{i}/{len(srcs)}] {src} -> {dest}")
        convert_file(src, dest, config)


def most_common_extension(directory: PathLike) -> str:
    """
    Extension shared by the most files in a directory.

    Raises:
        ValueError: No file in the directory has an extension
    """
    counts = Counter(entry.suffix for entry in Path(directory).iterdir()
                     if entry.is_file() and entry.suffix)
    if not counts:
        raise ValueError(f"No file with an extension in {directory}")
    return counts.most_common(1)[0][0]


def is_excluded(path: Path) -> bool:
    """Script archives and doodad files are not plain data files."""
    return path.stem == SCRIPTS_BASE or path.stem.endswith(DOODADS_POSTFIX)


def convert_dir(src_dir: PathLike, dest_dir: PathLike, target_ext: str,
                config: Optional[ConversionConfig] = None) -> List[Path]:
    """
    Convert every file of a directory's dominant extension.

    Args:
        src_dir: Directory to read
        dest_dir: Directory to write (created when missing)
        target_ext: Extension of the written files, e.g. '.yaml'
        config: Conversion options

    Returns:
        List of written files
    """
    config = config or ConversionConfig()
    src_dir, dest_dir = Path(src_dir), Path(dest_dir)
    if not target_ext.startswith('.'):
        target_ext = '.' + target_ext

    ext = most_common_extension(src_dir)
    files = sorted(p for p in src_dir.iterdir() if p.is_file() and p.suffix == ext and not is_excluded(p))

    log("=" * 70)
    log(f"Converting {len(files)} {ext} file(s): {src_dir} -> {dest_dir}")
    log("=" * 70)

    dest_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for i, src in enumerate(files, 1):
        dest = dest_dir / (src.stem + target_ext)
        log(f"[{i}/{len(files)}] {src.name} -> {dest.name}")
        convert_file(src, dest, config)
        written.append(dest)
    return written


def split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def build_config(args) -> ConversionConfig:
    """Merge command line options over the optional INI file."""
    overrides = {
        'dialect': args.version,
        'round_trip': True if args.round_trip else None,
        'table_width': args.table_width,
        'line_width': args.line_width,
    }
    if args.config:
        return ConversionConfig.from_ini(args.config, **overrides)
    return ConversionConfig(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        prog='rgss-codec',
        description='Convert RPG Maker data files to YAML and back',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
    rgss-codec -i Data/Map001.rxdata -o YAML/Map001.yaml

    # Lists (comma separated, converted pairwise):
    rgss-codec -I Data/Actors.rvdata2,Data/Items.rvdata2 -O YAML/Actors.yaml,YAML/Items.yaml --version ace

    # Whole directory back to binary:
    rgss-codec -S YAML -D Data -T .rxdata

Options can also come from an INI file:
    [conversion]
    version = vx
    round_trip = true
    table_width = 20
        """
    )

    parser.add_argument('-i', '--input-file', help='Input file, use with -o')
    parser.add_argument('-o', '--output-file', help='Output file, use with -i')
    parser.add_argument('-I', '--input-file-list', type=split_list,
                        help='Comma separated input files, use with -O')
    parser.add_argument('-O', '--output-file-list', type=split_list,
                        help='Comma separated output files, use with -I')
    parser.add_argument('-S', '--source-dir', help='Source directory, use with -D and -T')
    parser.add_argument('-D', '--dest-dir', help='Destination directory, use with -S and -T')
    parser.add_argument('-T', '--target-ext', help='Extension of the written files, for example .yaml')
    parser.add_argument('--version', choices=['xp', 'vx', 'ace'],
                        help='Engine version of the data files (default: xp)')
    parser.add_argument('--round-trip', action='store_true',
                        help='Keep data exactly as stored (no string trimming or version id markers)')
    parser.add_argument('--table-width', type=int,
                        help='Maximum Table cells per YAML row, -1 for unbounded (default: -1)')
    parser.add_argument('--line-width', type=int,
                        help='Preferred YAML line width, -1 for unbounded (default: -1)')
    parser.add_argument('--config', help='Path to an INI file with a [conversion] section')
    parser.add_argument('--log-file', help='Mirror console output to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug output')
    args = parser.parse_args(argv)

    single = args.input_file and args.output_file
    paired = args.input_file_list and args.output_file_list
    directory = args.source_dir and args.dest_dir and args.target_ext
    if not (single or paired or directory):
        parser.error('nothing to convert: use -i/-o, -I/-O or -S/-D/-T')

    # Initialize logging
    init_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)

    try:
        config = build_config(args)
        logDebug(f"Config: {config}")

        if single:
            convert(args.input_file, args.output_file, config)
        if paired:
            convert_list(args.input_file_list, args.output_file_list, config)
        if directory:
            convert_dir(args.source_dir, args.dest_dir, args.target_ext, config)

        print_summary()

    except Exception as e:
        logError(f"{e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
