"""
Card widget for one news item.

The card tracks its own Idle/Loading state for the "Read more" button; the
store only knows whether the detail is loaded.
"""
from enum import Enum
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from sources.base_provider import Category, NewsItem


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


_CHIP_TECH = "background-color: rgba(40, 90, 255, 26); color: rgba(30, 30, 40, 230);"
_CHIP_OTHER = "background-color: rgba(255, 40, 40, 26); color: rgba(30, 30, 40, 230);"


class NewsCard(QFrame):
    """Category chip, title, summary and either a read button or the detail."""

    read_more_requested = Signal(int)  # news id

    READ_TEXT = "Read more"
    LOADING_TEXT = "Loading..."
    RETRY_TEXT = "Retry"

    def __init__(self, item: NewsItem, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._item = item
        self._load_state = LoadState.IDLE
        self.setObjectName("newsCard")
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setStyleSheet("""
            #newsCard {
                background-color: rgba(255, 255, 255, 255);
                border: 1px solid rgba(210, 210, 215, 255);
                border-radius: 8px;
            }
        """)
        self._setup_ui()
        self.update_item(item)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(6)

        self._category_label = QLabel()
        self._category_label.setObjectName("categoryChip")
        chip_row = QHBoxLayout()
        chip_row.addWidget(self._category_label)
        chip_row.addStretch()
        layout.addLayout(chip_row)

        self._title_label = QLabel()
        self._title_label.setStyleSheet("font-size: 15px; font-weight: bold;")
        self._title_label.setWordWrap(True)
        layout.addWidget(self._title_label)

        self._summary_label = QLabel()
        self._summary_label.setStyleSheet("color: gray;")
        self._summary_label.setWordWrap(True)
        layout.addWidget(self._summary_label)

        # Detail panel, shown once loaded
        self._detail_frame = QFrame()
        self._detail_frame.setStyleSheet(
            "background-color: rgba(211, 211, 211, 51); border-radius: 4px;"
        )
        detail_layout = QVBoxLayout(self._detail_frame)
        detail_layout.setContentsMargins(8, 8, 8, 8)
        heading = QLabel("Detail:")
        heading.setStyleSheet("font-size: 11px; font-weight: bold;")
        detail_layout.addWidget(heading)
        self._detail_label = QLabel()
        self._detail_label.setWordWrap(True)
        self._detail_label.setStyleSheet("font-size: 12px;")
        detail_layout.addWidget(self._detail_label)
        layout.addWidget(self._detail_frame)

        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: rgba(200, 40, 40, 255); font-size: 11px;")
        self._error_label.setWordWrap(True)
        self._error_label.hide()
        layout.addWidget(self._error_label)

        self._read_button = QPushButton(self.READ_TEXT)
        self._read_button.clicked.connect(self._on_read_clicked)
        layout.addWidget(self._read_button, 0, Qt.AlignmentFlag.AlignRight)

    @property
    def news_id(self) -> int:
        return self._item.id

    @property
    def item(self) -> NewsItem:
        return self._item

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def read_button(self) -> QPushButton:
        return self._read_button

    def detail_text(self) -> str:
        return self._detail_label.text()

    def update_item(self, item: NewsItem) -> None:
        """Render ``item``. A loaded item ends any local loading state."""
        self._item = item
        self._category_label.setText(item.category)
        is_tech = item.category == Category.TECHNOLOGY.upper()
        self._category_label.setStyleSheet(
            (_CHIP_TECH if is_tech else _CHIP_OTHER) + " padding: 4px 8px; border-radius: 4px; font-size: 11px;"
        )
        self._title_label.setText(item.title)
        self._summary_label.setText(item.summary)

        if item.is_detail_loaded:
            self._load_state = LoadState.LOADED
            self._detail_label.setText(item.detail_content)
            self._error_label.hide()
        self._sync_controls()

    def mark_failed(self, message: str) -> None:
        """Return to Idle after a failed fetch so the user can retry."""
        if self._load_state is LoadState.LOADED:
            return
        self._load_state = LoadState.IDLE
        self._error_label.setText(message)
        self._error_label.show()
        self._read_button.setText(self.RETRY_TEXT)
        self._sync_controls()

    def _on_read_clicked(self) -> None:
        if self._load_state is not LoadState.IDLE:
            return
        self._load_state = LoadState.LOADING
        self._error_label.hide()
        self._sync_controls()
        self.read_more_requested.emit(self._item.id)

    def _sync_controls(self) -> None:
        loaded = self._load_state is LoadState.LOADED
        self._detail_frame.setVisible(loaded)
        self._read_button.setVisible(not loaded)
        if self._load_state is LoadState.LOADING:
            self._read_button.setText(self.LOADING_TEXT)
            self._read_button.setEnabled(False)
        elif not loaded:
            if self._read_button.text() == self.LOADING_TEXT:
                self._read_button.setText(self.READ_TEXT)
            self._read_button.setEnabled(True)
