from PyQt5 import QtCore, QtGui
from PyQt5.QtGui import QColor, QPainter, QPixmap


def _disc(size: int, fill: str):
    pix = QPixmap(size, size)
    pix.fill(QtCore.Qt.transparent)
    p = QPainter(pix)
    p.setRenderHint(QPainter.Antialiasing)
    p.setBrush(QColor(fill))
    p.setPen(QColor("#0f141a"))
    p.drawEllipse(0, 0, size, size)
    p.setBrush(QColor("#e6eaf0"))
    p.setPen(QtCore.Qt.NoPen)
    return pix, p


def make_mic_icon(size: int = 20) -> QtGui.QIcon:
    pix, p = _disc(size, "#ff4d57")
    # capsule + stand
    cw = max(3, int(size * 0.26))
    ch = int(size * 0.42)
    x = (size - cw) // 2
    y = int(size * 0.18)
    p.drawRoundedRect(x, y, cw, ch, cw // 2, cw // 2)
    p.drawRect(size // 2 - 1, y + ch + 1, 2, int(size * 0.14))
    p.drawRect(int(size * 0.36), int(size * 0.76), int(size * 0.28), 2)
    p.end()
    return QtGui.QIcon(pix)


def make_play_icon(size: int = 20) -> QtGui.QIcon:
    pix, p = _disc(size, "#1d2633")
    margin = int(size * 0.28)
    points = [
        QtCore.QPoint(margin, margin),
        QtCore.QPoint(size - margin, size // 2),
        QtCore.QPoint(margin, size - margin),
    ]
    p.drawPolygon(QtGui.QPolygon(points))
    p.end()
    return QtGui.QIcon(pix)


def make_stop_icon(size: int = 20) -> QtGui.QIcon:
    pix, p = _disc(size, "#1d2633")
    s = int(size * 0.42)
    x = (size - s) // 2
    p.drawRoundedRect(x, x, s, s, 2, 2)
    p.end()
    return QtGui.QIcon(pix)
