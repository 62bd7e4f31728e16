# progress_tracker.py
# Mastery charts over stored practice attempts

import logging
from datetime import datetime
from typing import List, Tuple

import pyqtgraph as pg
from PyQt5 import QtCore
from PyQt5.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QGridLayout,
    QWidget, QListWidget, QListWidgetItem,
)
from sqlalchemy.exc import SQLAlchemyError

import db

logger = logging.getLogger(__name__)

RECENT_ATTEMPTS = 50


class ProgressTrackerDialog(QDialog):
    """Attempts per day, success rate, and the most-missed words."""

    def __init__(self, parent=None, db_session=None):
        super().__init__(parent)
        self.db = db_session
        self.setWindowTitle("Progress Tracker")
        self.setModal(False)
        self.resize(900, 560)

        layout = QVBoxLayout(self)

        header_layout = QHBoxLayout()
        self.summary_label = QLabel("")
        header_layout.addWidget(self.summary_label)
        header_layout.addStretch()
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.update_charts)
        header_layout.addWidget(refresh_btn)
        layout.addLayout(header_layout)

        charts_widget = QWidget()
        charts_layout = QGridLayout(charts_widget)
        self.attempts_chart = self._create_chart("Attempts per day", y_max=None)
        self.rate_chart = self._create_chart("Success rate", y_max=1.05)
        self.struggle_list = QListWidget()

        charts_layout.addWidget(self.attempts_chart, 0, 0, 1, 2)
        charts_layout.addWidget(self.rate_chart, 1, 0)
        charts_layout.addWidget(self.struggle_list, 1, 1)
        layout.addWidget(charts_widget)

        attempts_header = QHBoxLayout()
        attempts_header.addWidget(QLabel("Recent attempts"))
        attempts_header.addStretch()
        self.delete_btn = QPushButton("Delete attempt")
        self.delete_btn.setEnabled(False)
        self.delete_btn.clicked.connect(self.delete_selected_attempt)
        attempts_header.addWidget(self.delete_btn)
        layout.addLayout(attempts_header)

        self.attempt_list = QListWidget()
        self.attempt_list.setMaximumHeight(160)
        self.attempt_list.itemSelectionChanged.connect(
            lambda: self.delete_btn.setEnabled(bool(self.attempt_list.selectedItems()))
        )
        layout.addWidget(self.attempt_list)

        self.update_charts()

    def _create_chart(self, title: str, y_max=None) -> pg.PlotWidget:
        chart = pg.PlotWidget()
        chart.setBackground(pg.mkColor("#151b22"))
        chart.setTitle(title, color="#e6eaf0", size="12pt")
        chart.showGrid(x=True, y=True, alpha=0.3)
        for axis_name in ("left", "bottom"):
            axis = chart.getPlotItem().getAxis(axis_name)
            axis.setPen(pg.mkPen("#6f7c91"))
            axis.setTextPen(pg.mkPen("#e6eaf0"))
        if y_max is not None:
            chart.setYRange(0, y_max, padding=0.05)
        chart.setMouseEnabled(x=True, y=False)
        chart.setMenuEnabled(False)
        return chart

    def _get_progress_data(self) -> List[Tuple[datetime, int, int]]:
        if self.db is None:
            return []
        try:
            rows = db.get_daily_progress(self.db)
        except SQLAlchemyError as e:
            logger.warning("Error retrieving progress data: %s", e)
            return []
        return [(datetime.strptime(day, "%Y-%m-%d"), a, s) for day, a, s in rows]

    def update_charts(self):
        data = self._get_progress_data()
        self.attempts_chart.clear()
        self.rate_chart.clear()
        self.struggle_list.clear()
        self._load_attempts()

        if self.db is not None:
            summary = db.get_mastery_summary(self.db)
            self.summary_label.setText(
                f"Attempts: {summary['attempts']} | Successes: {summary['successes']} | "
                f"Sentences mastered: {summary['sentences_mastered']}"
            )
            for word, count in db.get_struggle_words(self.db):
                self.struggle_list.addItem(f"{word}  ×{count}")

        if not data:
            for chart in (self.attempts_chart, self.rate_chart):
                chart.addItem(pg.TextItem("No attempts yet", anchor=(0.5, 0.5), color="#6f7c91"))
            return

        xs = [d.timestamp() for d, _, _ in data]
        attempts = [a for _, a, _ in data]
        rates = [s / a if a else 0.0 for _, a, s in data]
        ticks = [[(x, d.strftime("%m/%d")) for x, (d, _, _) in zip(xs, data)]]

        self.attempts_chart.plot(
            xs, attempts, pen=pg.mkPen("#00d0ff", width=2), symbol="o", symbolBrush="#00d0ff"
        )
        self.rate_chart.plot(
            xs, rates, pen=pg.mkPen("#4ade80", width=2), symbol="o", symbolBrush="#4ade80"
        )
        for chart in (self.attempts_chart, self.rate_chart):
            chart.getPlotItem().getAxis("bottom").setTicks(ticks)

    def _load_attempts(self):
        self.attempt_list.clear()
        if self.db is None:
            return
        try:
            attempts = db.get_all_attempts(self.db, limit=RECENT_ATTEMPTS)
        except SQLAlchemyError as e:
            logger.warning("Error retrieving attempts: %s", e)
            return
        for attempt in attempts:
            mark = "✓" if attempt.success else f"✗ {attempt.struggle_count}"
            item = QListWidgetItem(f"{attempt.timestamp}  {mark}  {attempt.sentence}")
            item.setData(QtCore.Qt.UserRole, attempt.id)
            self.attempt_list.addItem(item)

    def delete_selected_attempt(self):
        items = self.attempt_list.selectedItems()
        if not items or self.db is None:
            return
        attempt_id = items[0].data(QtCore.Qt.UserRole)
        try:
            db.delete_attempt(self.db, attempt_id)
        except SQLAlchemyError as e:
            logger.warning("Could not delete attempt %s: %s", attempt_id, e)
            self.db.rollback()
        self.update_charts()


def open_progress_tracker(parent_app, db_session):
    dialog = ProgressTrackerDialog(parent_app, db_session)
    dialog.show()
    return dialog
