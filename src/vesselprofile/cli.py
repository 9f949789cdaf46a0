"""
Command-line interface for the vessel profile extractor.

    vesselprofile run --inputs jar.jpg bowl.png --out profiles/
    vesselprofile init-config --out vesselprofile_config.yaml

`run` writes one <name>.profile.json per photo and exits 0 when at least
one profile was found, 2 when none was, and 1 on input or I/O errors.
"""

import argparse
import os
import sys

from vesselprofile.config import load_config, save_default_config
from vesselprofile.io.load_image import validate_image_inputs
from vesselprofile.io.save_artifacts import DebugArtifactWriter, ensure_dir, profile_path, save_json
from vesselprofile.models import Polarity
from vesselprofile.pipeline import extract_profile_from_file
from vesselprofile.tracer import configure_tracer, get_tracer


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_PROFILE = 2


def add_extraction_options(parser):
    """Per-run overrides of the `options` section of the config file."""
    group = parser.add_argument_group("extraction options")
    group.add_argument("--blur", type=int, choices=[0, 1, 2],
                       help="Box blur before thresholding: 0 off, 1 3x3, 2 5x5")
    group.add_argument("--smoothing", type=int,
                       help="Median half-window applied to the radii (capped at 5)")
    polarity = group.add_mutually_exclusive_group()
    polarity.add_argument("--invert", dest="invert", action="store_const", const=True,
                          help="Treat dark pixels as the vessel")
    polarity.add_argument("--no-invert", dest="invert", action="store_const", const=False,
                          help="Treat light pixels as the vessel")
    group.add_argument("--target-points", type=int,
                       help="Points in the output profile (8-24)")
    group.add_argument("--threshold-bias", type=float,
                       help="Offset added to the Otsu threshold (-50 to 50)")
    group.add_argument("--cleanup", type=int, choices=[0, 1, 2],
                       help="Morphological cleanup level")
    group.add_argument("--contrast-stretch", action="store_true",
                       help="Stretch gray levels to 0-255 before thresholding")


def add_tracing_options(parser):
    group = parser.add_argument_group("tracing")
    group.add_argument("--trace", action="store_true", help="Trace every stage to stderr")
    group.add_argument("--trace-level", default="INFO", choices=["ERROR", "WARN", "INFO", "DEBUG"])
    group.add_argument("--trace-file", help="Mirror trace lines to this file")
    group.add_argument("--trace-json", action="store_true", help="Emit trace lines as JSON")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="vesselprofile",
        description="Extract a normalized radius profile from side-view vessel photos",
    )
    commands = parser.add_subparsers(dest="command")

    run = commands.add_parser("run", help="Extract profiles from photos")
    run.add_argument("--inputs", "-i", nargs="+", required=True, metavar="PHOTO",
                     help="Photos to process")
    run.add_argument("--out", "-o", required=True, metavar="DIR",
                     help="Directory for <name>.profile.json files")
    run.add_argument("--config", "-c", help="YAML configuration file")
    run.add_argument("--debug", action="store_true",
                     help="Write per-stage images and metrics under DIR/debug")
    add_extraction_options(run)
    add_tracing_options(run)
    run.set_defaults(handler=handle_run)

    init = commands.add_parser("init-config", help="Write the default configuration")
    init.add_argument("--out", "-o", default="vesselprofile_config.yaml", metavar="PATH")
    init.set_defaults(handler=handle_init_config)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK
    return args.handler(args)


def apply_overrides(options, args):
    """Copy the extraction flags given on the command line onto options."""
    overrides = {
        "blur": args.blur,
        "smoothing": args.smoothing,
        "target_points": args.target_points,
        "threshold_bias": args.threshold_bias,
        "cleanup": args.cleanup,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(options, name, value)

    if args.invert is not None:
        options.polarity = Polarity.from_invert(args.invert)
    if args.contrast_stretch:
        options.contrast_stretch = True
    return options


def handle_run(args):
    config = load_config(args.config)
    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level if args.trace else config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )
    tracer = get_tracer()

    try:
        problems = validate_image_inputs(args.inputs)
        for problem in problems:
            tracer.event(problem, level="ERROR")
        if problems:
            raise ValueError("; ".join(problems))

        options = apply_overrides(config.options, args)
        debug = args.debug or config.debug.enabled
        ensure_dir(args.out)

        found = 0
        for photo in args.inputs:
            name = os.path.splitext(os.path.basename(photo))[0]
            writer = None
            if debug:
                writer = DebugArtifactWriter(args.out, name, max_edge=config.debug.max_edge_scale)

            with tracer.span("photo", module="cli", path=photo):
                result = extract_profile_from_file(
                    photo, options=options, config=config, debug_writer=writer,
                )

            target = profile_path(args.out, name)
            save_json(result, target)

            if result.is_empty:
                print(f"{photo}: no profile detected")
            else:
                found += 1
                print(f"{photo}: {len(result.profile)} points -> {target}")

        return EXIT_OK if found else EXIT_NO_PROFILE

    except (OSError, ValueError) as e:
        tracer.event("Run aborted", level="ERROR", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    finally:
        tracer.close()


def handle_init_config(args):
    save_default_config(args.out)
    print(f"Default configuration written to {args.out}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
