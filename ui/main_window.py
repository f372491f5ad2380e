from __future__ import annotations
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit,
    QComboBox, QMessageBox, QTableWidget, QTableWidgetItem, QHeaderView, QDialog
)
import asyncio
import logging
from typing import List

from core.models.customer import Customer
from core.services.customer_list import SortOption, build_listing, summary_text
from core.services.customer_repository import CustomerNotFoundError, CustomerRepository
from core.services.wizard_service import CustomerWizard
from core.storage.record_store import StorageError
from ui.widgets.customer_wizard import CustomerWizardDialog

logger = logging.getLogger(__name__)

NOTICE_MS = 4000


class MainWindow(QMainWindow):
    def __init__(self, repository: CustomerRepository):
        super().__init__()
        self.setWindowTitle("Customer Management")
        self.resize(1100, 700)
        self.repository = repository
        # une seule boucle : chaque action attend la fin de sa requête
        self._loop = asyncio.new_event_loop()

        self.customers: List[Customer] = []
        self.page = 1
        self.setCentralWidget(self._customers_view())
        self._refresh_customers()

    def _run(self, coro):
        return self._loop.run_until_complete(coro)

    def closeEvent(self, event):
        if not self._loop.is_closed():
            # attend les threads de asyncio.to_thread encore en cours
            self._loop.run_until_complete(self._loop.shutdown_default_executor())
            self._loop.close()
        super().closeEvent(event)

    # ==================== CLIENTS ====================
    def _customers_view(self):
        w = QWidget()
        root = QVBoxLayout(w)
        bar = QHBoxLayout()
        self.ed_search = QLineEdit(); self.ed_search.setPlaceholderText("Search by name, email, or phone...")
        self.cb_sort = QComboBox()
        for opt in SortOption:
            self.cb_sort.addItem(opt.label, opt.value)
        btn_new = QPushButton("Add New Customer")
        btn_edit = QPushButton("Edit")
        btn_del = QPushButton("Delete")
        bar.addWidget(self.ed_search, 1); bar.addWidget(self.cb_sort)
        bar.addStretch(1)
        bar.addWidget(btn_new); bar.addWidget(btn_edit); bar.addWidget(btn_del)
        root.addLayout(bar)

        self.lab_summary = QLabel("")
        root.addWidget(self.lab_summary)

        self.tbl_customers = QTableWidget(0, 5)
        self.tbl_customers.setHorizontalHeaderLabels(["Name", "Email", "Phone", "Billing Address", "ID"])
        self.tbl_customers.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl_customers.setSelectionBehavior(self.tbl_customers.SelectionBehavior.SelectRows)
        self.tbl_customers.setEditTriggers(self.tbl_customers.EditTrigger.NoEditTriggers)
        root.addWidget(self.tbl_customers, 1)

        pager = QHBoxLayout()
        self.lab_page = QLabel("")
        self.btn_prev = QPushButton("Previous")
        self.btn_next = QPushButton("Next")
        pager.addWidget(self.lab_page); pager.addStretch(1)
        pager.addWidget(self.btn_prev); pager.addWidget(self.btn_next)
        root.addLayout(pager)

        self.ed_search.textChanged.connect(self._reset_page)
        self.cb_sort.currentIndexChanged.connect(self._reset_page)
        self.btn_prev.clicked.connect(lambda: self._go_to_page(self.page - 1))
        self.btn_next.clicked.connect(lambda: self._go_to_page(self.page + 1))
        self.tbl_customers.doubleClicked.connect(self._customer_edit)
        btn_new.clicked.connect(self._customer_new)
        btn_edit.clicked.connect(self._customer_edit)
        btn_del.clicked.connect(self._customer_delete)
        return w

    def _refresh_customers(self):
        try:
            self.customers = self._run(self.repository.get_all())
        except StorageError as e:
            logger.warning("Loading customers failed: %s", e)
            QMessageBox.warning(self, "Customers", "Failed to load customers")
            return
        self._render()

    def _reset_page(self, *_):
        self.page = 1
        self._render()

    def _go_to_page(self, page: int):
        self.page = page
        self._render()

    def _render(self):
        listing = build_listing(
            self.customers,
            query=self.ed_search.text(),
            sort_by=self.cb_sort.currentData() or SortOption.RECENT,
            page=self.page,
        )
        self.page = listing.page
        self.tbl_customers.setRowCount(0)
        for c in listing.items:
            r = self.tbl_customers.rowCount(); self.tbl_customers.insertRow(r)
            self.tbl_customers.setItem(r, 0, QTableWidgetItem(c.full_name))
            self.tbl_customers.setItem(r, 1, QTableWidgetItem(c.email or "-"))
            self.tbl_customers.setItem(r, 2, QTableWidgetItem(c.phone or "-"))
            self.tbl_customers.setItem(r, 3, QTableWidgetItem(c.billing_address))
            self.tbl_customers.setItem(r, 4, QTableWidgetItem(c.id))
        self.tbl_customers.resizeRowsToContents()

        if listing.total == 0:
            self.lab_summary.setText(
                "No customers found. Try adjusting your search criteria" if self.ed_search.text().strip()
                else "No customers found. Get started by adding your first customer"
            )
        else:
            self.lab_summary.setText(summary_text(listing))
        self.lab_page.setText(f"Page {listing.page} of {listing.total_pages}" if listing.total_pages > 1 else "")
        self.btn_prev.setEnabled(listing.page > 1)
        self.btn_next.setEnabled(listing.page < listing.total_pages)

    def _selected_customer(self) -> Customer | None:
        row = self.tbl_customers.currentRow()
        if row < 0: return None
        cid = self.tbl_customers.item(row, 4).text()
        return next((c for c in self.customers if c.id == cid), None)

    def _customer_new(self):
        wizard = CustomerWizard(self.repository)
        dlg = CustomerWizardDialog(self, wizard, self._run, self.repository.create)
        if dlg.exec() == QDialog.Accepted:
            self.statusBar().showMessage("Customer added successfully!", NOTICE_MS)
            self._refresh_customers()

    def _customer_edit(self, *_):
        current = self._selected_customer()
        if not current:
            QMessageBox.information(self, "Customers", "Select a row first.")
            return
        wizard = CustomerWizard(self.repository, initial=current)
        dlg = CustomerWizardDialog(
            self, wizard, self._run,
            lambda draft: self.repository.update(current.id, draft),
        )
        if dlg.exec() == QDialog.Accepted:
            self.statusBar().showMessage("Customer updated successfully!", NOTICE_MS)
            self._refresh_customers()

    def _customer_delete(self):
        current = self._selected_customer()
        if not current:
            QMessageBox.information(self, "Customers", "Select a row first.")
            return
        if QMessageBox.question(self, "Delete", f"Delete {current.full_name}?") != QMessageBox.Yes:
            return
        try:
            self._run(self.repository.delete(current.id))
        except (StorageError, CustomerNotFoundError) as e:
            logger.warning("Deleting customer %s failed: %s", current.id, e)
            QMessageBox.warning(self, "Customers", "Failed to delete customer")
            return
        self.statusBar().showMessage("Customer deleted successfully!", NOTICE_MS)
        self._refresh_customers()
