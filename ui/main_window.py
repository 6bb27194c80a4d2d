"""
Main window - renders the feed and forwards read intents to the store.

The window only reads snapshots from the store's observation handle. Its
one intent is FeedStore.request_detail().
"""
from typing import Dict, List, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QLabel, QMainWindow, QScrollArea, QVBoxLayout, QWidget,
)

from core.logging.logger import get_logger
from core.settings.models import WindowSettings
from engine.feed_state import FeedState
from engine.feed_store import FeedStore
from widgets.news_card import NewsCard
from widgets.stats_card import StatsCard

logger = get_logger(__name__)


class NewsFeedWindow(QMainWindow):
    """Stats card, header and a scrollable newest-first list of news cards."""

    def __init__(self, store: FeedStore, window_settings: Optional[WindowSettings] = None,
                 interval_ms: int = 2000, title: str = "NewsFeedSimulator",
                 close_store_on_exit: bool = True):
        super().__init__()
        self._store = store
        self._view = store.observe()
        self._cards: Dict[int, NewsCard] = {}
        self._close_store_on_exit = close_store_on_exit

        settings = window_settings or WindowSettings()
        self.setWindowTitle(title)
        self.resize(settings.width, settings.height)

        self._setup_ui(interval_ms)

        store.detail_failed.connect(self._on_detail_failed)
        store.detail_not_found.connect(self._on_detail_not_found)
        self._subscription_id = self._view.subscribe(self.render)

        logger.debug("NewsFeedWindow created")

    def _setup_ui(self, interval_ms: int) -> None:
        central = QWidget()
        central.setObjectName("feedRoot")
        central.setStyleSheet("#feedRoot { background-color: rgba(250, 250, 252, 255); }")
        layout = QVBoxLayout(central)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(8)

        self.stats_card = StatsCard()
        layout.addWidget(self.stats_card)
        layout.addSpacing(8)

        seconds = interval_ms / 1000.0
        header = QLabel(f"Live News Feed (update {seconds:g}s)")
        header.setStyleSheet("font-size: 16px; font-weight: bold;")
        layout.addWidget(header)

        self._list_host = QWidget()
        self._list_layout = QVBoxLayout(self._list_host)
        self._list_layout.setContentsMargins(0, 0, 0, 0)
        self._list_layout.setSpacing(8)
        self._list_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        scroll.setWidget(self._list_host)
        layout.addWidget(scroll, 1)

        self.setCentralWidget(central)

    # ------------------------------------------------------------------

    def card_for(self, news_id: int) -> Optional[NewsCard]:
        return self._cards.get(news_id)

    def card_ids(self) -> List[int]:
        """News ids in on-screen order, top first."""
        ids = []
        for index in range(self._list_layout.count()):
            widget = self._list_layout.itemAt(index).widget()
            if isinstance(widget, NewsCard):
                ids.append(widget.news_id)
        return ids

    def render(self, state: FeedState) -> None:
        """Reconcile cards with a snapshot. Cards are keyed by news id."""
        self.stats_card.set_count(state.read_count)

        # items are newest first; walk oldest first so each new card lands on top
        for item in reversed(state.items):
            card = self._cards.get(item.id)
            if card is None:
                card = NewsCard(item)
                card.read_more_requested.connect(self._store.request_detail)
                self._cards[item.id] = card
                self._list_layout.insertWidget(0, card)
            elif card.item != item:
                card.update_item(item)

    def _on_detail_failed(self, news_id: int, message: str) -> None:
        card = self._cards.get(news_id)
        if card is not None:
            card.mark_failed(message)

    def _on_detail_not_found(self, news_id: int) -> None:
        card = self._cards.get(news_id)
        if card is not None:
            card.mark_failed(f"News item #{news_id} is no longer available")

    def closeEvent(self, event: QCloseEvent) -> None:
        self._view.unsubscribe(self._subscription_id)
        if self._close_store_on_exit:
            self._store.close()
        super().closeEvent(event)
