"""
ImageMarkup - draw, outline and label on top of an image.

This is the main entry point for the application.
Run with: python -m imagemarkup.app [IMAGE]
"""

import signal
import sys

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from imagemarkup import __version__
from imagemarkup.core.app_core import AppCore
from imagemarkup.services.config_service import ConfigService
from imagemarkup.services.logging_service import get_logger, setup_logging


# Global app reference for signal handlers
_app: QApplication = None
_app_core: AppCore = None
_should_quit = False


def request_quit(signum, frame):
    """Handle termination signals; the quit timer picks this up."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit:
        logger = get_logger(__name__)
        logger.info("Signal received, quitting...")

        if _app_core:
            _app_core.shutdown()
        elif _app:
            _app.quit()


def main() -> int:
    """
    Main entry point for ImageMarkup application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app, _app_core

    # Logging handlers follow the user config
    config = ConfigService()
    setup_logging(config.log_level, config.log_to_file, config.log_dir)
    logger = get_logger(__name__)

    try:
        logger.info("Starting ImageMarkup application...")

        # Create the Qt application
        _app = QApplication(sys.argv)
        _app.setApplicationName("ImageMarkup")
        _app.setOrganizationName("ImageMarkup")
        _app.setApplicationVersion(__version__)

        # Set up signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Timer to poll for quit signal (Qt event loop blocks Python signals)
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)  # Check every 100ms

        # Qt strips its own options from arguments()
        args = _app.arguments()[1:]
        image_path = args[0] if args else None

        _app_core = AppCore(_app, image_path, config)

        logger.info("ImageMarkup initialization complete. Entering event loop...")

        exit_code = _app.exec()

        logger.info(f"ImageMarkup exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        # Log any unhandled exceptions
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
