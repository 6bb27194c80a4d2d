"""
Reader status card shown above the feed.
"""
from typing import Optional

from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QVBoxLayout, QWidget


class StatsCard(QFrame):
    """Shows how many detail loads have completed."""

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setObjectName("statsCard")
        self.setStyleSheet("""
            #statsCard {
                background-color: rgba(220, 228, 255, 255);
                border-radius: 12px;
            }
        """)

        row = QHBoxLayout(self)
        row.setContentsMargins(16, 16, 16, 16)
        row.setSpacing(8)

        icon = QLabel("ℹ")
        icon.setStyleSheet("font-size: 18px;")
        row.addWidget(icon)

        column = QVBoxLayout()
        caption = QLabel("Reader status")
        caption.setStyleSheet("font-size: 11px;")
        column.addWidget(caption)
        self._count_label = QLabel()
        self._count_label.setStyleSheet("font-size: 20px; font-weight: bold;")
        column.addWidget(self._count_label)
        row.addLayout(column)
        row.addStretch()

        self.set_count(0)

    def set_count(self, count: int) -> None:
        noun = "article" if count == 1 else "articles"
        self._count_label.setText(f"{count} {noun} read")

    def text(self) -> str:
        return self._count_label.text()
