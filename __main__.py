#!/usr/bin/env python3
"""
ShotLog - Group Analyzer
Entry Point Module
Handles argument parsing, dependency checking, settings and logging setup,
then runs the requested command (analyze, list or mark).
"""
import argparse
import sys
import time
import traceback
from pathlib import Path
from typing import Optional, List
VERSION = "ShotLog 1.0.0 - Group Analyzer"
def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="ShotLog - shot group marking and analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m shotlog analyze session.json --distance 100
  python -m shotlog analyze 3f2a9c... --samples 5000 --seed 7
  python -m shotlog list
  python -m shotlog mark target.jpg
  python -m shotlog --check-deps
        """
    )
    parser.add_argument("--version", "-v", action="version", version=VERSION)
    parser.add_argument("--check-deps", "-c", action="store_true",
                        help="Check dependencies and exit")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--log-dir", type=str, help="Custom directory for log files")
    parser.add_argument("--data-dir", type=str, help="Directory holding the session store")
    parser.add_argument("--settings", type=str, help="Path to a JSON settings file")
    subparsers = parser.add_subparsers(dest="command")
    analyze = subparsers.add_parser("analyze", help="Analyze saved sessions")
    analyze.add_argument("sessions", nargs="+",
                         help="Session record files or session ids from the store")
    analyze.add_argument("--distance", type=float, help="Target distance override")
    analyze.add_argument("--distance-units", choices=["yards", "meters"],
                         help="Units of the target distance override")
    analyze.add_argument("--samples", type=int, help="Bootstrap resamples")
    analyze.add_argument("--seed", type=int, help="Seed for the bootstrap")
    analyze.add_argument("--csv", type=str, help="Write the comparison table to CSV")
    analyze.add_argument("--json", type=str, help="Write full statistics to JSON")
    subparsers.add_parser("list", help="List saved sessions")
    mark = subparsers.add_parser("mark", help="Open the target marking window")
    mark.add_argument("image", nargs="?", help="Target photo to mark")
    return parser.parse_args(argv)
def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    # display_name -> (import_name, description)
    required_packages = {
        'numpy': ('numpy', 'Bootstrap random generator'),
    }
    optional_packages = {
        'PySide6': ('PySide6', 'Target marking window'),
    }
    # display_name -> pyproject extra providing it
    optional_extras = {
        'PySide6': 'gui',
    }
    missing_required = []
    print(f"Python version: {sys.version}")
    for display_name, (import_name, description) in required_packages.items():
        try:
            module = __import__(import_name)
            print(f"OK {display_name}: {description} (version: {getattr(module, '__version__', 'unknown')})")
        except ImportError:
            missing_required.append(f"{display_name} ({description})")
            print(f"ERROR {display_name}: {description} - MISSING")
    for display_name, (import_name, description) in optional_packages.items():
        try:
            __import__(import_name)
            if import_name == 'PySide6':
                from PySide6 import QtCore, QtWidgets, QtGui  # noqa: F401
            print(f"OK {display_name}: {description}")
        except ImportError:
            print(f"WARNING {display_name}: {description} - OPTIONAL "
                  f"(pip install shotlog[{optional_extras[display_name]}])")
    if missing_required:
        print("\nMissing required dependencies:")
        for package in missing_required:
            print(f"   - {package}")
        print("\nTry installing with:")
        print("   pip install " + " ".join(p.split()[0].lower() for p in missing_required))
        return False
    return True
def setup_environment(args: argparse.Namespace):
    """Set up sys.path, settings and logging; return (settings, logger)."""
    current_dir = Path(__file__).parent
    if str(current_dir) not in sys.path:
        sys.path.insert(0, str(current_dir))
    from logger import setup_logger
    from settings import load_settings
    settings = load_settings(Path(args.settings) if args.settings else None)
    if args.data_dir:
        settings.data_dir = Path(args.data_dir)
    logger = setup_logger(log_dir=Path(args.log_dir) if args.log_dir else None)
    if args.debug:
        logger.set_log_level("DEBUG")
    logger.cleanup_old_logs(settings.log_retention)
    return settings, logger
def load_records(references: List[str], store) -> list:
    """Resolve each reference as a record file, falling back to a store id."""
    from session_store import SessionValidationError, load_record_file
    records = []
    for reference in references:
        path = Path(reference)
        if path.is_file():
            records.append(load_record_file(path))
            continue
        record = store.get(reference)
        if record is None:
            raise SessionValidationError(f"No session file or stored session named '{reference}'")
        records.append(record)
    return records
def run_analyze(args: argparse.Namespace, settings, logger) -> int:
    from analysis_report import analyze_sessions, export_csv, export_json, format_comparison_table
    from group_math import NumpyRandomSource
    from session_store import SessionStore
    samples = args.samples if args.samples is not None else settings.bootstrap_samples
    if samples <= 0:
        raise ValueError("--samples must be a positive integer")
    seed = args.seed if args.seed is not None else settings.random_seed
    store = SessionStore(settings.data_dir)
    records = load_records(args.sessions, store)
    distance_units = args.distance_units
    if args.distance is not None and distance_units is None:
        distance_units = settings.distance_units
    with logger.timer(f"analysis of {len(records)} sessions"):
        analyses = analyze_sessions(
            records,
            samples=samples,
            rng=NumpyRandomSource(seed),
            target_distance=args.distance,
            distance_units=distance_units,
        )
    print(format_comparison_table(analyses))
    if args.csv:
        export_csv(analyses, Path(args.csv))
        print(f"\nCSV written to {args.csv}")
    if args.json:
        export_json(analyses, Path(args.json))
        print(f"\nJSON written to {args.json}")
    return 0
def run_list(settings) -> int:
    from session_store import SessionStore
    sessions = SessionStore(settings.data_dir).list_sessions()
    if not sessions:
        print("No saved sessions.")
        return 0
    for record in sessions:
        distance = record.get("targetDistance")
        distance_text = f"{distance:g} {record['distanceUnits']}" if distance else "no distance"
        print(f"{record['id']}  {record.get('timestamp', '')}  "
              f"{len(record['shots'])} shots  {distance_text}")
    return 0
def run_mark(args: argparse.Namespace, settings) -> int:
    from marking_widget import run_marking_window
    from session_store import SessionStore
    image = Path(args.image) if args.image else None
    return run_marking_window(image, SessionStore(settings.data_dir),
                              scale_units=settings.scale_units,
                              distance_units=settings.distance_units)
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for ShotLog."""
    args = None
    try:
        args = parse_arguments(argv)
        if args.check_deps:
            if check_dependencies():
                print("\nAll dependencies are satisfied!")
                return 0
            print("\nSome dependencies are missing!")
            return 1
        if args.command is None:
            parse_arguments(["--help"])
        settings, logger = setup_environment(args)
        logger.log_user_action("command", {"command": args.command})
        if args.command == "analyze":
            return run_analyze(args, settings, logger)
        if args.command == "list":
            return run_list(settings)
        return run_mark(args, settings)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except Exception as e:
        print(f"\nError: {type(e).__name__}: {e}")
        if args is not None and args.debug:
            print("\nDebug traceback:")
            traceback.print_exc()
        else:
            print("Run with --debug for detailed error information")
        return 1
if __name__ == "__main__":
    start_time = time.time()
    exit_code = main()
    if exit_code != 0:
        print(f"\nShotLog exited after {time.time() - start_time:.2f} seconds")
    sys.exit(exit_code)
