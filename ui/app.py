from __future__ import annotations
import logging
import sys

from PySide6.QtWidgets import QApplication

from core.services.customer_repository import CustomerRepository
from core.storage.json_store import STORE_PATH, JsonRecordStore
from ui.main_window import MainWindow


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    repository = CustomerRepository(JsonRecordStore(STORE_PATH))
    win = MainWindow(repository)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
