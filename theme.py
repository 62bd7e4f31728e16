from PyQt5 import QtGui, QtWidgets

BACKGROUND = "#0f141a"
PANEL = "#151b22"
TEXT = "#e6eaf0"
MUTED = "#9fb0c0"
ACCENT = "#00d0ff"
DANGER = "#e5484d"

STYLESHEET = f"""
    QMainWindow{{background:{BACKGROUND};}}
    QMenuBar{{background:{BACKGROUND};color:{TEXT};}}
    QMenuBar::item:selected{{background:{PANEL};}}
    QLabel{{color:{TEXT};}}
    QLabel#Feedback{{color:{MUTED};font-size:13px;}}
    QLabel#Progress{{color:#6f7c91;font-weight:700;}}
    QTextBrowser#Sentence{{background:{PANEL};color:{TEXT};border:1px solid #202833;border-radius:10px;padding:14px;font-size:20px;}}
    QListWidget{{background:{PANEL};color:{TEXT};border:1px solid #202833;border-radius:6px;}}
    QListWidget::item:selected{{background:#0e639c;}}
    QComboBox{{background:#1d2633;color:{TEXT};border:1px solid #263241;border-radius:6px;padding:4px 8px;}}
    QPushButton{{background:#1d2633;color:{TEXT};border:1px solid #263241;border-radius:8px;padding:8px 14px;}}
    QPushButton:hover{{background:#223043;}}
    QPushButton:disabled{{color:#6f7c91;border-color:#2b3747;}}
    QPushButton#PrimaryButton{{background:{ACCENT};color:{BACKGROUND};font-weight:600;border:0;padding:8px 18px;border-radius:18px;}}
    QPushButton#PrimaryButton:hover{{background:#5ee0ff;}}
    QPushButton#MicBtn{{background:{DANGER};border:0;width:56px;height:56px;border-radius:28px;}}
    QPushButton#MicBtn:pressed{{background:#ff5b61;}}
    QPushButton#MicBtn:disabled{{background:#6f3a3d;}}
    QWidget#Transport{{background:{PANEL};border:1px solid #263241;border-radius:32px;}}
    QToolTip{{background-color:{PANEL};color:{TEXT};border:1px solid #202833;}}
"""


def apply_modern_theme(app: QtWidgets.QApplication) -> None:
    """Dark theme with a cyan accent for the practice window."""
    app.setStyle("Fusion")
    app.setFont(QtGui.QFont("Segoe UI", 10))

    pal = QtGui.QPalette()
    for role, color in (
        (QtGui.QPalette.Window, BACKGROUND),
        (QtGui.QPalette.WindowText, TEXT),
        (QtGui.QPalette.Base, PANEL),
        (QtGui.QPalette.AlternateBase, BACKGROUND),
        (QtGui.QPalette.Text, TEXT),
        (QtGui.QPalette.Button, PANEL),
        (QtGui.QPalette.ButtonText, TEXT),
        (QtGui.QPalette.ToolTipBase, PANEL),
        (QtGui.QPalette.ToolTipText, TEXT),
        (QtGui.QPalette.Highlight, ACCENT),
        (QtGui.QPalette.HighlightedText, BACKGROUND),
    ):
        pal.setColor(role, QtGui.QColor(color))
    app.setPalette(pal)
    app.setStyleSheet(STYLESHEET)
