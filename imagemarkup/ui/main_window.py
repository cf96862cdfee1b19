"""
Main window for ImageMarkup application.

This module contains the main application window with the editor widget
and the File/Edit menus.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QWidget,
)

from imagemarkup.editor.editor_widget import EditorWidget
from imagemarkup.editor.export import DEFAULT_PIXEL_RATIO, save_export
from imagemarkup.editor.session import KeyAction
from imagemarkup.services.config_service import DEFAULT_CONFIG, ConfigService
from imagemarkup.services.logging_service import get_logger


IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp);;All files (*)"


class MainWindow(QMainWindow):
    """
    Main application window for ImageMarkup.

    Features:
    - File menu: Open Image, Export PNG, Quit
    - Edit menu: Undo, Clear All
    - Editor widget with toolbar, canvas and status bar
    """

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Optional config service for editor defaults and export folder.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._editor: Optional[EditorWidget] = None

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()
        self._connect_session()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("ImageMarkup")
        self.setMinimumSize(640, 480)
        self.resize(1000, 720)

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._config, self)
        self._editor.export_requested.connect(self._on_export)
        self.setCentralWidget(self._editor)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Image…", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.setStatusTip("Open an image to annotate")
        open_action.triggered.connect(self._on_open)
        file_menu.addAction(open_action)

        self._export_action = QAction("&Export PNG…", self)
        self._export_action.setShortcut(QKeySequence.StandardKey.Save)
        self._export_action.setStatusTip("Save the annotated image as PNG")
        self._export_action.triggered.connect(self._on_export)
        self._export_action.setEnabled(False)
        file_menu.addAction(self._export_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.setStatusTip("Exit the application")
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── Edit Menu ────────────────────────────────────────────────
        edit_menu = menu_bar.addMenu("&Edit")

        self._undo_action = QAction("&Undo", self)
        self._undo_action.setShortcut(QKeySequence.StandardKey.Undo)
        self._undo_action.triggered.connect(self._on_undo)
        self._undo_action.setEnabled(False)
        edit_menu.addAction(self._undo_action)

        self._clear_action = QAction("&Clear All", self)
        self._clear_action.triggered.connect(self._on_clear_all)
        self._clear_action.setEnabled(False)
        edit_menu.addAction(self._clear_action)

    def _connect_session(self) -> None:
        session = self._editor.session
        session.annotations_present_changed.connect(lambda _: self._update_actions())
        session.undo_available_changed.connect(lambda _: self._update_actions())
        session.disabled_changed.connect(lambda _: self._update_actions())
        session.image_changed.connect(self._update_actions)

    def _update_actions(self) -> None:
        session = self._editor.session
        self._export_action.setEnabled(session.has_image and session.has_annotations)
        self._undo_action.setEnabled(session.interactive and session.can_undo)
        self._clear_action.setEnabled(session.interactive and session.has_annotations)

    # ─── Public Methods ───────────────────────────────────────────────────

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    def open_image(self, path: Union[str, Path]) -> bool:
        """
        Load an image file and show the window.

        Args:
            path: Image file to annotate.
        """
        loaded = self._editor.load_image(path)
        if loaded:
            size = self._editor.session.image_size
            self.setWindowTitle(f"ImageMarkup - {Path(path).name} ({size[0]}×{size[1]})")
            self._logger.info(f"Image opened in editor: {path}")
        else:
            self.setWindowTitle("ImageMarkup")
            QMessageBox.warning(self, "Open Image", f"Could not load image:\n{path}")

        self.show()
        self.raise_()
        self.activateWindow()
        return loaded

    def default_export_path(self) -> Path:
        """Timestamped PNG path in the configured export folder."""
        if self._config:
            folder = Path(self._config.default_export_folder)
        else:
            folder = Path(DEFAULT_CONFIG["default_export_folder"])
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return folder / f"annotated_{timestamp}.png"

    # ─── Menu Actions ─────────────────────────────────────────────────────

    def _on_open(self) -> None:
        """Handle File > Open Image."""
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", str(Path.home()), IMAGE_FILTER)
        if path:
            self.open_image(path)

    def _on_export(self) -> None:
        """Handle File > Export PNG."""
        session = self._editor.session
        if not (session.has_image and session.has_annotations):
            return

        path, _ = QFileDialog.getSaveFileName(
            self, "Export PNG", str(self.default_export_path()), "PNG image (*.png)"
        )
        if not path:
            return

        ratio = self._config.export_pixel_ratio if self._config else DEFAULT_PIXEL_RATIO
        if not save_export(self._editor.canvas, path, ratio):
            QMessageBox.warning(self, "Export PNG", f"Could not save:\n{path}")

    def _on_undo(self) -> None:
        """Handle Edit > Undo."""
        self._editor.session.handle_key(KeyAction.UNDO)

    def _on_clear_all(self) -> None:
        """Handle Edit > Clear All."""
        self._editor.session.clear_all()

    def closeEvent(self, event) -> None:
        self._logger.info("MainWindow closing")
        super().closeEvent(event)
