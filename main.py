import sys
import os
import argparse
import logging

from PyQt6.QtCore import QCoreApplication

from clipsync import __version__, utils
from clipsync.managers import (
    ClipManager, ConfigurationManager, DependencyContainer, ErrorHandler, LoggingManager,
)
from clipsync.timeline import AbsoluteTimeMapper

# Console output until the LoggingManager takes over
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler()]
)


def log_uncaught_exceptions(exctype, value, tb):
    logging.critical("Uncaught exception", exc_info=(exctype, value, tb))


sys.excepthook = log_uncaught_exceptions


def build_parser():
    parser = argparse.ArgumentParser(
        prog="clipsync",
        description="List TeslaCam events with their clip groups and recording gaps."
    )
    parser.add_argument("path", help="TeslaCam folder, a SavedClips/SentryClips folder or a single event folder")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--log-dir", help="directory for log files (default ~/.clipsync/logs)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def print_event(event, estimated_duration):
    print(f"{event.name}  [{event.folder_type}]  {utils.format_reason(event.reason)}")
    print(f"  {len(event.clip_groups)} clip groups, {len(event.gaps)} gaps")

    mapper = AbsoluteTimeMapper(len(event.clip_groups), estimated_duration)
    for index, group in enumerate(event.clip_groups):
        cameras = ", ".join(cam.value for cam in group.cameras)
        start = utils.format_time(mapper.clip_start(index))
        print(f"  #{index:<3} {group.timestamp}  @{start}  {cameras}")

    for gap in event.gaps:
        print(f"  gap after #{gap.after_index}: {gap.formatted_duration} "
              f"({gap.start_time:%H:%M:%S} -> {gap.end_time:%H:%M:%S})")


def main(argv=None):
    args = build_parser().parse_args(argv)
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("ClipSync")

    container = DependencyContainer()
    config_manager = ConfigurationManager(None, container)
    container.register_service('configuration', config_manager)
    container.register_service('error_handler', ErrorHandler())
    config_manager.initialize()

    logging_manager = LoggingManager(None, container, logs_directory=args.log_dir)
    container.register_service('logging', logging_manager)
    logging_manager.initialize()
    if args.debug:
        logging_manager.set_debug_mode(True)

    clip_manager = ClipManager(None, container)
    container.register_service('clip_manager', clip_manager)
    clip_manager.initialize()

    try:
        result = clip_manager.scan_root(os.path.abspath(args.path))
        if result.error:
            print(result.error, file=sys.stderr)
            return 1

        estimated = config_manager.get_sync_config().estimated_clip_duration_s
        for event in result.events:
            print_event(event, estimated)
            print()

        print(f"{len(result.events)} events")
        for failure in result.failures:
            print(f"skipped {failure}", file=sys.stderr)
        return 0

    finally:
        container.clear()


if __name__ == '__main__':
    sys.exit(main())
