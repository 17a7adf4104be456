import sys
import logging
from PyQt6.QtWidgets import QApplication
from gui import MainWindow


def setup_logging(level=logging.INFO):
    """Sends solver and GUI log records to stdout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def main():
    """
    Entry point for the plate heat conduction GUI application.
    """
    setup_logging()
    app = QApplication(sys.argv)

    window = MainWindow()
    window.show()

    sys.exit(app.exec())

if __name__ == "__main__":
    main()
