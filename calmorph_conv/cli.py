#!/usr/bin/env python
"""
CalMorph conversion command-line interface

Converts a directory of large, sequential TIFF frames into smaller JPEG
tiles, grouped into one directory per genotype, for use with CalMorph.

Usage examples:
    # Convert with the plate table as last argument
    calmorph-conv -i path_to_tiffs/ plate_id.csv

    # 96-well plate from the joe microscope, normalized contrast
    calmorph-conv -i tiffs/ -m joe -w 96 -C norm -p plate_id.csv

    # Custom microscope
    calmorph-conv -i tiffs/ -m custom -M '-crop 2x2@' -M '+repage +adjoin' -n 4 -b 12 -P
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from .config import Config
from .core.base import set_log_level, setup_logger
from .core.contrast import CONTRAST_MODES
from .core.errors import ConfigurationError
from .core.profiles import PROFILES
from .modules import CancellationToken, ImageMagickEngine
from .modules.conversion import install_stop_handlers, restore_handlers
from .pipeline import Pipeline


IMAGEMAGICK_HINT = """
This tool requires ImageMagick (v6) to run. With brew,

  brew install imagemagick --with-libtiff
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert sequential microscope TIFFs into CalMorph JPEG tiles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Contrast modes (-C, once for all channels or once per channel in order):
  none   no enhancement (rescaled to the file's bit depth)
  auto   linearly stretch from min and max values to full range (-auto-level)
  norm   expand to full range, clipping 2% black and 1% white (-normalize)
        """
    )

    io = parser.add_argument_group('input & output')
    io.add_argument('-i', '--input', type=Path, default=Path('.'),
                    help='directory of TIFF files (current directory)')
    io.add_argument('-a', '--input-prefix', help='input file prefix (xy)')
    io.add_argument('-o', '--output', type=Path,
                    help='output directory for JPEGs (= input dir if not set)')
    io.add_argument('-A', '--group-prefix', help='group prefix for output files and dirs (1_)')
    io.add_argument('-Z', '--group-suffix', help='group suffix for output files and dirs (proc)')
    io.add_argument('-e', '--extension', help='output file extension (jpg)')

    scope = parser.add_argument_group('microscope')
    scope.add_argument('-m', '--microscope', choices=list(PROFILES), help='microscope (cobra)')
    scope.add_argument('-w', '--wells', type=int, help='number of wells, 384 or 96 (384)')
    scope.add_argument('-f', '--fields', type=int,
                       help='number of fields per well (computed from the input files if not set)')
    scope.add_argument('-c', '--channels', type=int, help='number of channels (2)')

    plate = parser.add_argument_group('plate id')
    plate.add_argument('csv', nargs='?', type=Path, help='plate id .csv file')
    plate.add_argument('-p', '--plate', type=Path, help='plate id .csv file')
    plate.add_argument('-P', '--search-plate', action='store_true',
                       help='use the first .csv file found in the input directory')

    parser.add_argument('-j', '--jobs', help='parallel jobs, e.g. 3 or +0 relative to cores (+0)')
    parser.add_argument('-C', '--contrast', action='append', choices=CONTRAST_MODES,
                        help='contrast per channel')

    custom = parser.add_argument_group('custom microscope')
    custom.add_argument('-M', '--custom-op', action='append',
                        help="ImageMagick operations when -m custom (e.g. -M '-crop 2x2@')")
    custom.add_argument('-n', '--custom-tiles', type=int,
                        help='number of output images per frame when -m custom (1)')
    custom.add_argument('-b', '--custom-bit-depth', type=int,
                        help='sensor bit depth when -m custom (11)')

    misc = parser.add_argument_group('misc')
    misc.add_argument('--config', type=Path, help='configuration YAML file')
    misc.add_argument('--set', nargs=2, action='append', metavar=('KEY', 'VALUE'),
                      help='override config value: --set output.depth 8')
    misc.add_argument('-O', '--overwrite', action='store_true', help='overwrite output files')
    misc.add_argument('-q', '--quiet', action='store_true',
                      help='do not warn about missing input files')
    misc.add_argument('-v', '--verbose', action='store_true', help='print all commands')
    misc.add_argument('--dry-run', action='store_true', help='plan the conversion only')
    misc.add_argument('--no-validate', action='store_true', help='skip output validation')
    return parser


def apply_args(config: Config, args: argparse.Namespace):
    """Apply command-line options over the loaded configuration"""
    if args.set:
        for key, value in args.set:
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                pass
            config.set(key, value)

    config.set_if('input.prefix', args.input_prefix)
    config.set_if('output.group_prefix', args.group_prefix)
    config.set_if('output.group_suffix', args.group_suffix)
    config.set_if('output.ext', args.extension)
    config.set_if('microscope.name', args.microscope)
    config.set_if('plate.wells', args.wells)
    config.set_if('microscope.fields', args.fields)
    config.set_if('microscope.channels', args.channels)
    config.set_if('parallel.jobs', args.jobs)
    config.set_if('contrast.modes', args.contrast)
    config.set_if('microscope.custom.transform_ops', args.custom_op)
    config.set_if('microscope.custom.tiles_per_frame', args.custom_tiles)
    config.set_if('microscope.custom.sensor_bit_depth', args.custom_bit_depth)
    if args.search_plate:
        config.set('plate.search_input_dir', True)
    if args.overwrite:
        config.set('output.overwrite', True)
    if args.quiet:
        config.set('logging.quiet', True)
    if args.verbose:
        config.set('logging.verbose', True)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger("calmorph_conv")

    if not args.input.is_dir():
        print(f"Error: Input directory not found: {args.input}", file=sys.stderr)
        return 2

    try:
        config = Config(args.config) if args.config else Config()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    apply_args(config, args)

    if config.get('logging.verbose'):
        set_log_level(logging.DEBUG)

    engine = ImageMagickEngine(
        str(config.get('engine.executable')), int(config.get('output.depth')),
        logger=setup_logger("ImageMagickEngine"),
    )
    if not args.dry_run and not engine.check_available():
        print(IMAGEMAGICK_HINT, file=sys.stderr)
        return 2

    steps = ['convert'] if args.no_validate else None
    token = CancellationToken()
    pipeline = Pipeline(config=config, engine=engine, token=token)

    previous = install_stop_handlers(token)
    try:
        result = pipeline.run(
            input_dir=args.input,
            output_dir=args.output,
            plate_csv=args.plate or args.csv,
            steps=steps,
            dry_run=args.dry_run,
        )
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    finally:
        restore_handlers(previous)

    status = result['status']
    if status in ('success', 'warning'):
        logger.info(f"Conversion finished ({status})")
        return 0
    logger.error(f"Conversion finished with status: {status}")
    return 1


if __name__ == '__main__':
    sys.exit(main())
