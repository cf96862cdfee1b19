"""
Text entry overlay coordination for the ImageMarkup editor.

The Text tool opens a small input at the press point. This module owns the
open/focus/commit/cancel lifecycle of that input; the canvas only shows the
widget and forwards its events.

Opening the overlay happens in the middle of a pointer gesture, and the
rest of that gesture can pull focus away from the fresh input. A blur
caused that way must not commit. Every open therefore creates an
OverlayToken that carries a blur guard:

- the guard is released when the opening gesture ends, or at the latest
  after ``commit_guard_ms``
- closing, reopening or resetting cancels the token, so timers still
  pending from an earlier open have no effect
"""

from typing import Optional, Tuple

from PySide6.QtCore import QObject, QTimer, Signal

from imagemarkup.services.logging_service import get_logger


class OverlayToken:
    """Lifetime of one open overlay."""

    def __init__(self) -> None:
        self.cancelled: bool = False
        self.guarded: bool = True

    def cancel(self) -> None:
        self.cancelled = True
        self.guarded = False

    @property
    def active(self) -> bool:
        return not self.cancelled


class TextEntryOverlay(QObject):
    """
    Coordinates the text input overlay.

    Signals:
        opened: Overlay shown at (x, y) in image coordinates.
        closed: Overlay hidden, with or without a commit.
        focus_requested: The input should take keyboard focus now.
        text_committed: Non-empty trimmed text confirmed at (x, y).
    """

    opened = Signal(float, float)
    closed = Signal()
    focus_requested = Signal()
    text_committed = Signal(float, float, str)

    def __init__(
        self,
        focus_delay_ms: int = 10,
        commit_guard_ms: int = 200,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._token: Optional[OverlayToken] = None
        self._position: Tuple[float, float] = (0.0, 0.0)
        self._text: str = ""

        self._focus_timer = QTimer(self)
        self._focus_timer.setSingleShot(True)
        self._focus_timer.setInterval(focus_delay_ms)
        self._focus_timer.timeout.connect(self._on_focus_due)

        self._guard_timer = QTimer(self)
        self._guard_timer.setSingleShot(True)
        self._guard_timer.setInterval(commit_guard_ms)
        self._guard_timer.timeout.connect(self._on_guard_expired)

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._token is not None and self._token.active

    @property
    def guard_active(self) -> bool:
        return self.is_open and self._token.guarded

    @property
    def position(self) -> Tuple[float, float]:
        return self._position

    @property
    def text(self) -> str:
        return self._text

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def open(self, x: float, y: float) -> OverlayToken:
        """Show the overlay at (x, y) with empty text and schedule focus."""
        self._drop_token()

        token = OverlayToken()
        self._token = token
        self._position = (float(x), float(y))
        self._text = ""

        self._focus_timer.start()
        self._guard_timer.start()

        self._logger.debug(f"Text overlay opened at ({x:.1f}, {y:.1f})")
        self.opened.emit(float(x), float(y))
        return token

    def end_opening_gesture(self) -> None:
        """The gesture that opened the overlay is over; blur may commit again."""
        if self.is_open and self._token.guarded:
            self._token.guarded = False
            self._guard_timer.stop()

    def set_text(self, text: str) -> None:
        if self.is_open:
            self._text = text

    def commit(self) -> bool:
        """
        Explicit commit (Enter).

        Closes the overlay. Emits text_committed only for non-blank text.

        Returns:
            True if text was committed.
        """
        if not self.is_open:
            return False

        x, y = self._position
        text = self._text.strip()
        self._close()

        if not text:
            self._logger.debug("Text overlay closed with blank text; nothing added")
            return False

        self.text_committed.emit(x, y, text)
        return True

    def confirm(self) -> bool:
        """Explicit confirm action used by touch layouts; same rule as commit()."""
        return self.commit()

    def blur(self) -> bool:
        """
        The input lost focus.

        Ignored while the opening guard is up; otherwise an implicit commit.

        Returns:
            True if text was committed.
        """
        if not self.is_open:
            return False
        if self._token.guarded:
            self._logger.debug("Ignoring blur while text overlay is opening")
            return False
        return self.commit()

    def cancel(self) -> None:
        """Escape or cancel: discard the text and close."""
        if self.is_open:
            self._close()

    def reset(self) -> None:
        """Close without committing, e.g. when the background image changes."""
        if self.is_open:
            self._close()
        else:
            self._drop_token()
            self._text = ""

    # ─── Internals ────────────────────────────────────────────────────────

    def _close(self) -> None:
        self._drop_token()
        self._text = ""
        self.closed.emit()

    def _drop_token(self) -> None:
        self._focus_timer.stop()
        self._guard_timer.stop()
        if self._token is not None:
            self._token.cancel()
        self._token = None

    def _on_focus_due(self) -> None:
        if self.is_open:
            self.focus_requested.emit()

    def _on_guard_expired(self) -> None:
        if self.is_open:
            self._token.guarded = False
