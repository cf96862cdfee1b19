"""
Application core for ImageMarkup.

This module contains the AppCore class which is responsible for:
- Initializing the config service
- Applying global styling (dark theme)
- Creating and showing the main window
- Opening the image passed on the command line
"""

from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from imagemarkup.services.config_service import ConfigService
from imagemarkup.services.logging_service import get_logger
from imagemarkup.ui.main_window import MainWindow


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize services
    - Apply global dark theme
    - Create and show the MainWindow
    """

    def __init__(
        self,
        app: QApplication,
        image_path: Optional[Union[str, Path]] = None,
        config_service: Optional[ConfigService] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            image_path: Optional image to open on startup.
            config_service: Optional pre-built config (tests); loaded from disk otherwise.
        """
        super().__init__()
        self._app = app
        self._logger = get_logger(__name__)
        self._logger.info("Initializing ImageMarkup application core...")

        self._config_service: Optional[ConfigService] = config_service
        self._main_window: Optional[MainWindow] = None

        # Initialize in order
        self._init_services()
        self._apply_dark_theme()
        self._init_ui()
        self._open_initial_image(image_path)

    def _init_services(self) -> None:
        """Initialize all application services."""
        if self._config_service is None:
            self._config_service = ConfigService()
        self._logger.info(
            f"Drawing defaults from config: {self._config_service.stroke_color}, "
            f"{self._config_service.stroke_width}px stroke, {self._config_service.font_size}px text"
        )

    def _apply_dark_theme(self) -> None:
        """
        Apply a dark color palette to the application.

        Uses Qt's QPalette for a native-looking dark theme.
        """
        self._logger.debug("Applying dark theme...")

        palette = QPalette()

        # Window and base colors
        palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(50, 50, 50))

        # Text colors
        palette.setColor(QPalette.ColorRole.Text, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.BrightText, QColor(255, 255, 255))

        # Button colors
        palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(220, 220, 220))

        # Highlight colors
        palette.setColor(QPalette.ColorRole.Highlight, QColor(80, 120, 180))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))

        palette.setColor(QPalette.ColorRole.ToolTipBase, QColor(60, 60, 60))
        palette.setColor(QPalette.ColorRole.ToolTipText, QColor(220, 220, 220))

        # Disabled state colors
        for role in (
            QPalette.ColorRole.WindowText,
            QPalette.ColorRole.Text,
            QPalette.ColorRole.ButtonText,
        ):
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(127, 127, 127))

        self._app.setPalette(palette)

        self._app.setStyleSheet("""
            QToolTip {
                background-color: #3d3d3d;
                color: #dcdcdc;
                border: 1px solid #5a5a5a;
                padding: 4px;
            }
            QMenuBar {
                background-color: #2d2d2d;
                padding: 2px;
            }
            QMenuBar::item:selected {
                background-color: #4a4a4a;
            }
            QMenu {
                background-color: #2d2d2d;
                border: 1px solid #3a3a3a;
            }
            QMenu::item:selected {
                background-color: #4a6a9a;
            }
        """)

        self._logger.info("Dark theme applied")

    def _init_ui(self) -> None:
        """Create and show the main window."""
        self._main_window = MainWindow(self._config_service)
        self._main_window.show()
        self._logger.info("Main window shown")

    def _open_initial_image(self, image_path: Optional[Union[str, Path]]) -> None:
        if image_path is None:
            self._logger.info("No image given; use File > Open Image")
            return
        self._main_window.open_image(image_path)

    # ─── Application Lifecycle ────────────────────────────────────────────

    @Slot()
    def shutdown(self) -> None:
        """Clean shutdown."""
        self._logger.info("Shutting down ImageMarkup...")
        if self._main_window:
            self._main_window.close()
        QApplication.quit()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window
