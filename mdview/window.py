"""Main viewer window: embedded browser view, zoom, print and geometry persistence."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QEvent, QSettings, Qt, QTimer, QUrl
from PySide6.QtGui import QAction, QDesktopServices, QGuiApplication, QKeySequence
from PySide6.QtPrintSupport import QPrintDialog, QPrinter
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QMainWindow, QMessageBox

from .renderer import MarkdownRenderer, load_html_template
from .window_state import (
    WindowGeometry,
    is_on_screen,
    load_window_geometry,
    open_settings,
    save_window_geometry,
    step_zoom,
)

logger = logging.getLogger(__name__)

WINDOW_TITLE = "Markdown Viewer"
FILE_WATCH_INTERVAL_MS = 1200


class ExternalLinkPage(QWebEnginePage):
    """Open clicked web links in the desktop browser instead of the viewer."""

    def acceptNavigationRequest(self, url, nav_type, is_main_frame):  # noqa: N802
        if nav_type == QWebEnginePage.NavigationType.NavigationTypeLinkClicked and url.scheme() in {"http", "https"}:
            QDesktopServices.openUrl(url)
            return False
        return super().acceptNavigationRequest(url, nav_type, is_main_frame)


class MarkdownViewerWindow(QMainWindow):
    def __init__(self, settings: QSettings | None = None):
        super().__init__()
        self.settings = settings if settings is not None else open_settings()
        template = load_html_template()
        self.renderer = MarkdownRenderer(template.text)
        self.current_file: Path | None = None
        self._current_signature: tuple[int, int] | None = None
        self._zoom_factor = 1.0
        # QtWebEngine prints asynchronously, the printer must outlive the call.
        self._printer: QPrinter | None = None

        self.setWindowTitle(WINDOW_TITLE)

        self.preview = QWebEngineView(self)
        self.preview.setPage(ExternalLinkPage(self.preview))
        # Documents are loaded as local HTML. Allow remote JS so the MathJax and
        # Mermaid CDN bundles load, and file URLs so rewritten images resolve.
        preview_settings = self.preview.settings()
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        if hasattr(QWebEngineSettings.WebAttribute, "PrintElementBackgrounds"):
            preview_settings.setAttribute(QWebEngineSettings.WebAttribute.PrintElementBackgrounds, True)
        self.preview.loadFinished.connect(self._on_preview_load_finished)
        self.preview.printFinished.connect(self._on_print_finished)
        self.preview.installEventFilter(self)
        self.setCentralWidget(self.preview)

        self._add_shortcut("Print", QKeySequence(QKeySequence.StandardKey.Print), self._print_document)
        self._add_shortcut("Reload", QKeySequence("F5"), self.reload_current_file)
        self._add_shortcut("Zoom In", QKeySequence("Ctrl+="), lambda: self._set_zoom(step_zoom(self._zoom_factor, 1)))
        self._add_shortcut("Zoom Out", QKeySequence("Ctrl+-"), lambda: self._set_zoom(step_zoom(self._zoom_factor, -1)))
        self._add_shortcut("Reset Zoom", QKeySequence("Ctrl+0"), lambda: self._set_zoom(1.0))

        self._file_change_watch_timer = QTimer(self)
        self._file_change_watch_timer.setInterval(FILE_WATCH_INTERVAL_MS)
        self._file_change_watch_timer.timeout.connect(self._on_file_change_watch_tick)

        self._restore_window_geometry()

        if template.fallback:
            QMessageBox.warning(self, "Warning", "Template file not found. Using minimal template.")

    def _add_shortcut(self, text: str, shortcut, handler) -> QAction:
        action = QAction(text, self)
        action.setShortcut(shortcut)
        action.setShortcutContext(Qt.ShortcutContext.WindowShortcut)
        action.triggered.connect(handler)
        self.addAction(action)
        return action

    # ---- File loading ----

    def load_markdown_file(self, file_path: str | Path) -> bool:
        """Render a markdown file into the view; on failure report, close and return False."""
        path = Path(file_path).expanduser()
        try:
            if not path.is_file():
                logger.error("File not found: %s", path)
                QMessageBox.critical(self, "Error", f"File not found: {file_path}")
                self.close()
                return False
            self._render_file(path.absolute())
        except Exception as exc:
            logger.exception("Error loading file %s", path)
            QMessageBox.critical(self, "Error", f"Error loading file: {exc}")
            self.close()
            return False

        self._file_change_watch_timer.start()
        return True

    def reload_current_file(self) -> None:
        """Re-render the loaded file, keeping the current document on failure."""
        if self.current_file is None:
            return
        try:
            self._render_file(self.current_file)
        except Exception as exc:
            logger.warning("Could not reload %s: %s", self.current_file, exc)

    def _render_file(self, path: Path) -> None:
        stat = path.stat()
        markdown_text = path.read_text(encoding="utf-8-sig", errors="replace")
        base_directory = path.parent
        html_doc = self.renderer.render_document(markdown_text, base_directory, path.name)
        self.current_file = path
        self._current_signature = (int(stat.st_mtime_ns), int(stat.st_size))
        # Relative links (not only images) resolve against the file's folder.
        self.preview.setHtml(html_doc, QUrl.fromLocalFile(f"{base_directory}/"))
        self.setWindowTitle(f"{WINDOW_TITLE} - {path.name}")
        logger.info("Loaded %s (%d bytes)", path, stat.st_size)

    def _on_file_change_watch_tick(self) -> None:
        """Auto-refresh when the loaded markdown file changes on disk."""
        if self.current_file is None:
            return
        try:
            stat = self.current_file.stat()
        except OSError:
            # File may be temporarily missing while an editor saves it.
            return

        current_sig = (int(stat.st_mtime_ns), int(stat.st_size))
        if current_sig == self._current_signature:
            return
        # Update the baseline first so a failing reload is not retried every tick.
        self._current_signature = current_sig
        logger.info("File changed on disk, reloading %s", self.current_file)
        self.reload_current_file()

    def _on_preview_load_finished(self, ok: bool) -> None:
        if not ok:
            logger.warning("Embedded view reported a failed load")
        # The render widget behind the view is created lazily and receives the
        # wheel events, so hook it once it exists. Qt keeps one entry per
        # filter object, so reinstalling on every load is harmless.
        proxy = self.preview.focusProxy()
        if proxy is not None:
            proxy.installEventFilter(self)
        self.preview.setZoomFactor(self._zoom_factor)

    # ---- Zoom ----

    def eventFilter(self, watched, event) -> bool:  # noqa: N802
        if event.type() == QEvent.Type.Wheel and event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            self._set_zoom(step_zoom(self._zoom_factor, event.angleDelta().y()))
            return True
        return super().eventFilter(watched, event)

    def _set_zoom(self, factor: float) -> None:
        if factor == self._zoom_factor:
            return
        self._zoom_factor = factor
        self.preview.setZoomFactor(factor)
        logger.debug("Zoom factor %.2f", factor)

    # ---- Printing ----

    def _print_document(self) -> None:
        try:
            printer = QPrinter(QPrinter.PrinterMode.HighResolution)
            dialog = QPrintDialog(printer, self)
            if not dialog.exec():
                return
            self._printer = printer
            logger.info("Printing %s", self.current_file)
            # Some PySide6 builds expose the slot as `print_`.
            print_page = getattr(self.preview, "print", None) or self.preview.print_
            print_page(printer)
        except Exception as exc:
            self._printer = None
            logger.exception("Print failed")
            self._show_print_error(str(exc))

    def _on_print_finished(self, success: bool) -> None:
        self._printer = None
        if not success:
            logger.error("Print job failed")
            self._show_print_error("the print job did not complete")

    def _show_print_error(self, message: str) -> None:
        QMessageBox.critical(self, "Print Error", f"Error printing: {message}")

    # ---- Geometry ----

    def _restore_window_geometry(self) -> None:
        """Apply the saved size, position and maximized state."""
        geometry = load_window_geometry(self.settings)
        self.resize(geometry.width, geometry.height)

        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            virtual = screen.virtualGeometry()
            virtual_rect = (virtual.x(), virtual.y(), virtual.width(), virtual.height())
            if is_on_screen(geometry.left, geometry.top, virtual_rect):
                self.move(geometry.left, geometry.top)
            else:
                frame = self.frameGeometry()
                frame.moveCenter(screen.availableGeometry().center())
                self.move(frame.topLeft())

        if geometry.maximized:
            self.setWindowState(self.windowState() | Qt.WindowState.WindowMaximized)

    def _save_window_geometry(self) -> None:
        state = self.windowState()
        maximized = bool(state & Qt.WindowState.WindowMaximized)
        if not state & (Qt.WindowState.WindowMaximized | Qt.WindowState.WindowMinimized | Qt.WindowState.WindowFullScreen):
            # Only the normal state carries the dimensions worth restoring.
            geometry = WindowGeometry(self.x(), self.y(), self.width(), self.height(), maximized)
        else:
            geometry = load_window_geometry(self.settings)._replace(maximized=maximized)
        save_window_geometry(self.settings, geometry)

    def closeEvent(self, event) -> None:  # noqa: N802
        self._file_change_watch_timer.stop()
        if self.isVisible():
            self._save_window_geometry()
        super().closeEvent(event)
