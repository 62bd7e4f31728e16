# speech_practice.py
from __future__ import annotations

import logging
import os
import sys
from collections import deque
from typing import Optional

import numpy as np
import pyqtgraph as pg
from PyQt5 import QtCore, QtWidgets
from PyQt5.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPushButton,
    QSplitter,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

import db
from audio_input import SoundDeviceInput, list_input_devices
from audio_player import AudioPlayer
from highlight_theme import legend_html_for_sentence, token_html
from icons import make_mic_icon, make_play_icon, make_stop_icon
from practice_session import (
    AttemptResult,
    CaptureHandle,
    PracticeSession,
    SessionListener,
    SessionState,
)
from progress_tracker import open_progress_tracker
from script_loader import pick_next_script, split_sentences
from settings import (
    SessionConfig,
    default_settings,
    load_settings,
    save_settings,
    settings_path,
)
from theme import apply_modern_theme
from transcription_service import make_recognizer
from tts import MISSED_WORD_REPEATS, Speaker
from vad import VadState

logger = logging.getLogger(__name__)

FALLBACK_TEXT = (
    "The quick brown fox jumps over the lazy dog. "
    "Mr. Smith reads seven pages every morning. "
    "She sells sea shells by the sea shore."
)
RMS_HISTORY = 60  # frames shown in the level meter (~15 s)


class SessionBridge(QtCore.QObject, SessionListener):
    """Re-emits session events as Qt signals so the GUI thread handles them."""

    state_changed = QtCore.pyqtSignal(str)
    feedback = QtCore.pyqtSignal(str)
    vad = QtCore.pyqtSignal(float, bool, float)
    result = QtCore.pyqtSignal(object)
    error = QtCore.pyqtSignal(str)

    def on_state_changed(self, state: SessionState) -> None:
        self.state_changed.emit(state.value)

    def on_feedback(self, message: str) -> None:
        self.feedback.emit(message)

    def on_vad(self, state: VadState) -> None:
        self.vad.emit(state.rms, state.is_speech, state.silence_duration_ms)

    def on_result(self, result: AttemptResult) -> None:
        self.result.emit(result)

    def on_error(self, error) -> None:
        self.error.emit(error.message)


class SpeechPracticeApp(QtWidgets.QMainWindow):
    def __init__(self, settings: Optional[dict] = None) -> None:
        super().__init__()
        self.setWindowTitle("Speech Practice")

        self.settings = settings or load_settings(default_settings(), settings_path())
        self.config = SessionConfig.from_settings(self.settings)
        self.db = db.get_session(self.settings.get("db_path", "sessions.db"))
        self.player = AudioPlayer(self.config.sample_rate)
        self.speaker = Speaker(
            speed=float(self.settings.get("tts_speed", 1.0)),
            repeat_gap_s=float(self.settings.get("tts_repeat_gap_s", 0.5)),
        )
        self.bridge = SessionBridge()
        self._handle: Optional[CaptureHandle] = None
        self._rms = deque([0.0] * RMS_HISTORY, maxlen=RMS_HISTORY)
        self._progress_dialog = None

        self.session = PracticeSession(
            [],
            make_recognizer(self.settings),
            self._open_input,
            config=self.config,
            listener=self.bridge,
            db=self.db,
        )

        self._build_ui()
        self.bridge.state_changed.connect(self._on_state_changed)
        self.bridge.feedback.connect(self.feedback_label.setText)
        self.bridge.vad.connect(self._on_vad)
        self.bridge.result.connect(self._on_result)
        self.bridge.error.connect(self._on_error)

        self.load_next_script()

    # ───────────────────────────────── UI ─────────────────────────────────

    def _build_ui(self) -> None:
        mb = self.menuBar()
        act_next = mb.addAction("Next Script")
        act_next.triggered.connect(self.load_next_script)
        act_progress = mb.addAction("Progress Tracker")
        act_progress.triggered.connect(self._open_progress_tracker)

        splitter = QSplitter(QtCore.Qt.Horizontal)
        self.setCentralWidget(splitter)

        # left: sentence, meter, controls
        main_w = QWidget()
        ml = QVBoxLayout(main_w)

        top = QHBoxLayout()
        self.progress_label = QLabel(objectName="Progress")
        top.addWidget(self.progress_label)
        top.addStretch()
        top.addWidget(QLabel("Microphone"))
        self.device_cb = QComboBox()
        self.device_cb.addItem("System default", userData=None)
        try:
            for idx, name, _sr in list_input_devices():
                self.device_cb.addItem(name, userData=idx)
        except Exception as e:
            logger.warning("Could not list input devices: %s", e)
        stored = self.device_cb.findData(self.settings.get("input_device"))
        if stored > 0:
            self.device_cb.setCurrentIndex(stored)
        self.device_cb.currentIndexChanged.connect(self._on_device_changed)
        top.addWidget(self.device_cb)
        ml.addLayout(top)

        self.legend = QLabel(legend_html_for_sentence())
        self.legend.setTextFormat(QtCore.Qt.RichText)
        ml.addWidget(self.legend)

        self.sentence_view = QTextBrowser(objectName="Sentence")
        self.sentence_view.setOpenLinks(False)
        self.sentence_view.anchorClicked.connect(self._on_word_clicked)
        ml.addWidget(self.sentence_view, stretch=2)

        self.meter = pg.PlotWidget()
        self.meter.setBackground(pg.mkColor("#0e1d1d"))
        self.meter.setMouseEnabled(x=False, y=False)
        self.meter.setMenuEnabled(False)
        self.meter.showAxis("left", False)
        self.meter.showAxis("bottom", False)
        self.meter.setYRange(0, 0.2, padding=0)
        self.meter.setFixedHeight(90)
        self.meter_line = self.meter.plot(
            fillLevel=0, pen=pg.mkPen("#00d0ff", width=1.8), brush=pg.mkBrush("#00d0ff22")
        )
        self.meter.addItem(
            pg.InfiniteLine(
                pos=self.config.speech_threshold, angle=0, movable=False,
                pen=pg.mkPen("#e5484d", width=1, style=QtCore.Qt.DashLine),
            )
        )
        ml.addWidget(self.meter)

        self.feedback_label = QLabel(objectName="Feedback")
        self.feedback_label.setAlignment(QtCore.Qt.AlignCenter)
        ml.addWidget(self.feedback_label)

        transport = QWidget(objectName="Transport")
        transport.setFixedHeight(68)
        tlay = QHBoxLayout(transport)
        tlay.setContentsMargins(10, 6, 10, 6)
        icon_sz = 32
        self.ic_mic = make_mic_icon(icon_sz)
        self.ic_stop = make_stop_icon(icon_sz)
        self.btn_prev = QPushButton("←")
        self.btn_mic = QPushButton(objectName="MicBtn")
        self.btn_mic.setIcon(self.ic_mic)
        self.btn_mic.setIconSize(QtCore.QSize(icon_sz, icon_sz))
        self.btn_play = QPushButton()
        self.btn_play.setIcon(make_play_icon(icon_sz))
        self.btn_play.setIconSize(QtCore.QSize(icon_sz, icon_sz))
        self.btn_play.setToolTip("Play my recording")
        self.btn_listen = QPushButton("Listen")
        self.btn_listen.setToolTip("Read the sentence aloud")
        self.btn_speed = QPushButton(self._speed_label())
        self.btn_speed.setToolTip("Reading speed")
        self.btn_next = QPushButton("→", objectName="PrimaryButton")
        for b in (
            self.btn_prev, self.btn_listen, self.btn_speed, self.btn_mic, self.btn_play, self.btn_next,
        ):
            tlay.addWidget(b)
        ml.addWidget(transport, alignment=QtCore.Qt.AlignHCenter)

        self.btn_prev.clicked.connect(self._previous)
        self.btn_next.clicked.connect(self._advance)
        self.btn_mic.clicked.connect(self._toggle_record)
        self.btn_play.clicked.connect(self._play_recording)
        self.btn_listen.clicked.connect(self._listen_sentence)
        self.btn_speed.clicked.connect(self._toggle_speed)
        splitter.addWidget(main_w)

        # right: struggle words + transcript
        side_w = QWidget()
        sl = QVBoxLayout(side_w)
        sl.addWidget(QLabel("Words to practice"))
        self.struggle_list = QListWidget()
        self.struggle_list.setToolTip("Click a word to hear it")
        self.struggle_list.itemClicked.connect(self._on_struggle_clicked)
        sl.addWidget(self.struggle_list)
        sl.addWidget(QLabel("What I heard"))
        self.transcript_label = QLabel("–")
        self.transcript_label.setWordWrap(True)
        self.transcript_label.setTextInteractionFlags(
            QtCore.Qt.TextSelectableByMouse | QtCore.Qt.TextSelectableByKeyboard
        )
        sl.addWidget(self.transcript_label)
        sl.addStretch()
        splitter.addWidget(side_w)
        splitter.setSizes([760, 240])

    def _render(self) -> None:
        s = self.session
        total = len(s.sentences)
        self.progress_label.setText(
            f"Sentence {s.sentence_index + 1} / {total}" if total else "No sentences"
        )
        html = "".join(
            token_html(tok.display, status, f"word:{idx}" if tok.is_word else None)
            for idx, (tok, status) in enumerate(s.annotated_tokens())
        )
        self.sentence_view.setHtml(f'<div style="font-size:22px; line-height:150%;">{html}</div>')

        self.struggle_list.clear()
        for item in s.struggles:
            self.struggle_list.addItem(item.word)
        self.transcript_label.setText(s.transcript or "–")

        idle = s.state in (SessionState.IDLE, SessionState.SUCCESS)
        self.btn_mic.setEnabled(s.state is not SessionState.PROCESSING)
        self.btn_mic.setIcon(self.ic_mic if idle else self.ic_stop)
        self.btn_play.setEnabled(idle and bool(s.last_clip))
        self.btn_listen.setEnabled(idle and bool(s.sentence))
        self.btn_prev.setEnabled(idle and s.sentence_index > 0)
        self.btn_next.setEnabled(
            idle and not s.advance_blocked and s.sentence_index < total - 1
        )
        self.device_cb.setEnabled(idle)

    # ────────────────────────────── actions ───────────────────────────────

    def _open_input(self) -> SoundDeviceInput:
        device = self.device_cb.currentData()
        if device is None:
            device = self.config.input_device
        return SoundDeviceInput(device, self.config.sample_rate, self.config.frame_size)

    def load_next_script(self) -> None:
        scripts_dir = self.settings.get("scripts_dir", "scripts")
        try:
            name, text = pick_next_script(scripts_dir, os.path.join(scripts_dir, "script_index.json"))
        except OSError as e:
            logger.info("No scripts available (%s); using built-in sentences", e)
            name, text = "built-in", FALLBACK_TEXT
        if self.session.load_sentences(split_sentences(text)):
            self.setWindowTitle(f"Speech Practice - {name}")
        self._render()

    def _toggle_record(self) -> None:
        if self.session.active_handle is None:
            self.player.stop()
            self.speaker.stop()
            if self.session.state is SessionState.SUCCESS:
                self.session.reset_attempt()
            self._handle = self.session.start()
        elif self._handle is not None:
            self.session.stop(self._handle)
            self._handle = None
        self._render()

    def _play_recording(self) -> None:
        clip = self.session.last_clip
        if not clip:
            return
        if self.player.active:
            self.player.stop()
            return
        self.speaker.stop()
        self.player.set_clip(clip)
        self.player.play()

    def _can_speak(self) -> bool:
        return self.session.state in (SessionState.IDLE, SessionState.SUCCESS)

    def _listen_sentence(self) -> None:
        if not self._can_speak():
            return
        if self.speaker.speaking:
            self.speaker.stop()
            return
        self.player.stop()
        if not self.speaker.speak_sentence(self.session.sentence):
            self.feedback_label.setText("Text-to-speech is not available")

    def _speak_word(self, word: str, repeats: int) -> None:
        if not self._can_speak():
            return
        self.player.stop()
        self.speaker.speak_word(word, repeats)

    def _on_word_clicked(self, url: QtCore.QUrl) -> None:
        try:
            idx = int(url.toString().split(":", 1)[1])
            tok, status = self.session.annotated_tokens()[idx]
        except (IndexError, ValueError):
            return
        self._speak_word(tok.display, MISSED_WORD_REPEATS if status == "unmatched" else 1)

    def _on_struggle_clicked(self, item) -> None:
        self._speak_word(item.text(), MISSED_WORD_REPEATS)

    def _speed_label(self) -> str:
        return "1x" if self.speaker.speed == 1.0 else f"{self.speaker.speed:g}x"

    def _toggle_speed(self) -> None:
        self.settings["tts_speed"] = self.speaker.toggle_speed()
        self.btn_speed.setText(self._speed_label())
        save_settings(self.settings, settings_path())

    def _on_device_changed(self, _index: int) -> None:
        self.settings["input_device"] = self.device_cb.currentData()
        save_settings(self.settings, settings_path())

    def _advance(self) -> None:
        if not self.session.advance():
            if self.session.advance_blocked:
                self.feedback_label.setText("Read this sentence correctly before moving on")
        self._render()

    def _previous(self) -> None:
        self.session.previous()
        self._render()

    def _open_progress_tracker(self) -> None:
        self._progress_dialog = open_progress_tracker(self, self.db)

    # ────────────────────────────── session ───────────────────────────────

    @QtCore.pyqtSlot(str)
    def _on_state_changed(self, state: str) -> None:
        if state in (SessionState.IDLE.value, SessionState.SUCCESS.value):
            self._handle = None
            self._rms.extend([0.0] * RMS_HISTORY)
            self.meter_line.setData(np.asarray(self._rms))
        self._render()

    @QtCore.pyqtSlot(float, bool, float)
    def _on_vad(self, rms: float, is_speech: bool, silence_ms: float) -> None:
        self._rms.append(rms)
        self.meter_line.setData(np.asarray(self._rms))

    @QtCore.pyqtSlot(object)
    def _on_result(self, result: AttemptResult) -> None:
        self._render()

    @QtCore.pyqtSlot(str)
    def _on_error(self, message: str) -> None:
        self.feedback_label.setText(message)

    def closeEvent(self, ev) -> None:
        self.session.cancel()
        self.session.join(timeout=2.0)
        self.speaker.stop()
        self.player.close()
        super().closeEvent(ev)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    app = QtWidgets.QApplication(sys.argv)
    apply_modern_theme(app)
    win = SpeechPracticeApp()
    win.resize(1000, 620)
    win.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
