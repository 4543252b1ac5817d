"""
Screener - Main Entry Point

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This is the main application entry point that orchestrates all components.
It provides a CLI to watch a screenshot folder, rename a single file, or
check that the configured classifier is reachable.

NOTICE: This software is proprietary and confidential. Unauthorized copying,
modification, distribution, or use is strictly prohibited.
See LICENSE.txt for full terms and conditions.

Version: 1.0.0
Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import sys
import signal
import logging
import argparse
import threading
from pathlib import Path
from typing import List, Optional

from .config import Config
from .ai.vision_client import create_client
from .core.debounce import is_image_candidate
from .core.ledger import FeedbackLedger
from .core.models import RenameOutcome, RenameRecord
from .core.pipeline import WatchPipeline
from .core.renamer import RenameCoordinator
from .core.session import ScreenshotMonitor
from .errors import ConfigurationError
from .utils.logger import get_logger


class Screener:
    """
    Main application orchestrator.

    Attributes:
        config: Configuration object
        log: Structured logger
        classifier: Vision client
        monitor: Screenshot monitor owning the watch session
    """

    def __init__(self, config: Config):
        """Initialize the application from configuration."""
        self.config = config
        self.log = get_logger(log_dir=config.log_dir, level=config.log_level)
        self.classifier = create_client(config)
        self.monitor = ScreenshotMonitor(self.classifier, pipeline_factory=self._build_pipeline)
        self._stop_requested = threading.Event()

    def _build_pipeline(self, classifier) -> WatchPipeline:
        return WatchPipeline(classifier, on_result=self._on_result, **self.config.pipeline_options())

    def _on_result(self, record: RenameRecord):
        """Print the outcome of one processing cycle."""
        original = Path(record.original_path).name
        if record.outcome is RenameOutcome.RENAMED:
            print(f"✅ {original} -> {Path(record.final_path).name}")
        elif record.outcome is RenameOutcome.UNCHANGED:
            print(f"   {original} already has a descriptive name")
        elif record.outcome is RenameOutcome.DUPLICATE:
            return
        else:
            print(f"❌ {original}: {record.outcome.value} ({record.error or 'no usable name'})")

    def check(self) -> bool:
        """
        Report classifier credential and availability.

        Returns:
            bool: True if the classifier can be used
        """
        provider = self.config.classifier_provider
        print(f"Classifier: {provider} (model: {self.classifier.model})")

        if not self.classifier.has_credential():
            env_name = self.config.get("classifier.api_key_env", "OPENAI_API_KEY")
            print(f"❌ No API key configured (set classifier.api_key or ${env_name})")
            return False

        if self.classifier.is_available():
            print(f"✅ {provider} reachable at {self.classifier.base_url}")
            return True

        print(f"⚠️  {provider} not reachable at {self.classifier.base_url}")
        return False

    def rename(self, file_path: str) -> bool:
        """
        Classify and rename one file immediately.

        Args:
            file_path (str): File to rename

        Returns:
            bool: True if the file was renamed or already well named
        """
        if not is_image_candidate(file_path, self.config.image_extensions):
            print(f"❌ {Path(file_path).name}: not a supported image (allowed: {', '.join(self.config.image_extensions)})")
            return False

        coordinator = RenameCoordinator(
            self.classifier,
            FeedbackLedger(ttl=self.config.ledger_ttl),
            max_name_length=self.config.max_name_length
        )
        record = coordinator.rename_file(file_path)
        self._on_result(record)
        return record.success

    def watch(self, folder: Optional[str] = None) -> bool:
        """
        Watch a folder until interrupted.

        Args:
            folder (str, optional): Overrides the configured watched folder

        Returns:
            bool: False if monitoring could not be started
        """
        folder = folder or self.config.watched_folder
        if not folder:
            print("❌ No folder to watch (use --folder or set watched_folder)")
            return False

        self.monitor.set_folder(folder)
        if not self.monitor.start():
            print(f"❌ Could not start monitoring {folder} (see log for details)")
            return False

        print(f"👀 Watching {self.monitor.target.directory}")
        print("Press Ctrl+C to stop\n")

        self._install_signal_handlers()
        try:
            while not self._stop_requested.wait(1.0):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            print("\n⏹️  Stopping watcher...")
            self.monitor.stop()
        return True

    def request_stop(self):
        self._stop_requested.set()

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, lambda signum, frame: self.request_stop())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screener",
        description="Screener - rename new screenshots from an AI description",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s watch --folder ~/Desktop     # Watch a folder for new screenshots
  %(prog)s rename shot.png              # Rename one file now
  %(prog)s check                        # Verify classifier credential and reachability
        """
    )

    parser.add_argument('--config', metavar='PATH',
                        help='Configuration file (default: $SCREENER_CONFIG or ~/.screener/config.json)')
    parser.add_argument('--folder', help='Folder to watch (overrides watched_folder)')
    parser.add_argument('--provider', choices=['openai', 'ollama'], help='Classifier backend')
    parser.add_argument('--model', help='Vision model name')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show info messages on the console')

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('watch', help='Watch a folder and rename new screenshots')
    rename_parser = subparsers.add_parser('rename', help='Classify and rename a single file')
    rename_parser.add_argument('file', help='Image file to rename')
    subparsers.add_parser('check', help='Check classifier credential and availability')
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load configuration and apply command-line overrides."""
    config = Config(args.config)
    if args.folder:
        config.update("watched_folder", str(Path(args.folder).expanduser()))
    if args.provider:
        config.update("classifier.provider", args.provider)
    if args.model:
        config.update("classifier.model", args.model)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    app = Screener(config)
    if args.verbose:
        app.log.set_console_level(logging.INFO)

    if args.command == 'watch':
        ok = app.watch()
    elif args.command == 'rename':
        ok = app.rename(args.file)
    else:
        ok = app.check()

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
