"""
Command-line interface for openMVG to kapture export.

Usage:
    openmvg2kapture -i sfm_data.json -o kapture_dir [--config export.yaml]
"""

import argparse
import logging
import sys

from .config import ExportConfig
from .errors import KaptureExportError, UnsupportedCameraModel
from .exporter import KaptureExporter
from .sfm_data_loader import load_sfm_data


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='openmvg2kapture',
        description='Export an openMVG reconstruction to the kapture file format',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
    # Export with default options
    openmvg2kapture -i sfm_data.json -o kapture

    # Export without reading images for point colors
    openmvg2kapture -i sfm_data.json -o kapture --no-colorize

    # Use formatting options from a YAML file
    openmvg2kapture -i sfm_data.json -o kapture -c export.yaml -v
'''
    )

    parser.add_argument(
        '--sfmdata', '-i',
        type=str,
        required=True,
        help='The SfM_Data file to convert (openMVG JSON)'
    )

    parser.add_argument(
        '--outdir', '-o',
        type=str,
        required=True,
        help='Path where kapture files will be saved'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Optional YAML export configuration'
    )

    parser.add_argument(
        '--no-colorize',
        action='store_true',
        help='Do not read images; write the default color for every 3D point'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = ExportConfig.from_yaml(args.config) if args.config else ExportConfig()
        if args.no_colorize:
            config.colorize_points = False

        logger.info(f"Reading scene from {args.sfmdata}")
        scene = load_sfm_data(args.sfmdata)

        exporter = KaptureExporter(config)
        report = exporter.export(scene, args.outdir)

        print("\n" + "=" * 60)
        print("KAPTURE EXPORT SUMMARY")
        print("=" * 60)
        print(f"Output directory:       {report.output_dir}")
        print(f"Cameras:                {report.num_cameras}")
        print(f"Image records:          {report.num_records}")
        print(f"Trajectories:           {report.num_trajectories}")
        print(f"3D points:              {report.num_points}")
        print("=" * 60)
        return 0

    except UnsupportedCameraModel as e:
        logger.error(
            f"Export failed at stage '{e.stage}': camera {e.camera_id} "
            f"of type '{e.model_name}' is not supported. Aborting"
        )
        return 1
    except KaptureExportError as e:
        logger.error(f"Export failed at stage '{e.stage}': {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
