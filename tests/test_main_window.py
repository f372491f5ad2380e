"""Tests for the main window flows (offscreen Qt)."""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

import ui.main_window as main_window
from core.services.customer_repository import CustomerRepository
from core.storage.record_store import MemoryRecordStore

from conftest import valid_payload


@pytest.fixture(scope="module")
def qapp():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


class FilledWizardDialog:
    """Remplace le dialogue : saisit un client valide puis soumet."""

    def __init__(self, parent, wizard, run, on_submit):
        self.wizard = wizard
        self.run = run
        self.on_submit = on_submit

    def exec(self):
        self.wizard.update(**valid_payload())
        assert self.run(self.wizard.next())
        assert self.run(self.wizard.next())
        if self.run(self.wizard.submit(self.on_submit)) is None:
            return QtWidgets.QDialog.Rejected
        return QtWidgets.QDialog.Accepted


@pytest.fixture
def window(qapp, monkeypatch):
    monkeypatch.setattr(main_window, "CustomerWizardDialog", FilledWizardDialog)
    win = main_window.MainWindow(CustomerRepository(MemoryRecordStore()))
    win.show()
    yield win
    win.close()


class TestCustomerNew:
    def test_shows_notice_and_refreshes_list(self, window):
        """A submitted wizard adds a row and shows the success notice."""
        assert window.tbl_customers.rowCount() == 0

        window._customer_new()

        assert window.statusBar().currentMessage() == "Customer added successfully!"
        assert window.tbl_customers.rowCount() == 1
        assert window.tbl_customers.item(0, 0).text() == "Jo Bloggs"
        assert len(window.customers) == 1


class TestClose:
    def test_close_shuts_down_event_loop(self, window):
        """Closing the window stops the executor and closes the loop."""
        window._customer_new()
        window.close()
        assert window._loop.is_closed()
