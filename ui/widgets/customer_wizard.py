from __future__ import annotations
import logging
from typing import Any, Awaitable, Callable, Dict

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QLineEdit, QTextEdit, QCheckBox,
    QLabel, QPushButton, QStackedWidget, QWidget, QGroupBox, QMessageBox
)

from core.models.customer import CustomerDraft
from core.services.customer_repository import CustomerNotFoundError
from core.services.wizard_service import CustomerWizard, Step
from core.storage.record_store import StorageError

logger = logging.getLogger(__name__)

ERROR_CSS = "color:#c62828;"


def _error_label() -> QLabel:
    lab = QLabel("")
    lab.setStyleSheet(ERROR_CSS)
    lab.setWordWrap(True)
    lab.hide()
    return lab


class CustomerWizardDialog(QDialog):
    """Dialogue 3 étapes piloté par CustomerWizard (la logique reste côté core)."""

    def __init__(
        self,
        parent=None,
        wizard: CustomerWizard | None = None,
        run: Callable[[Awaitable[Any]], Any] | None = None,
        on_submit: Callable[[CustomerDraft], Awaitable[Any]] | None = None,
    ):
        super().__init__(parent)
        self.wizard = wizard
        self._run = run
        self._on_submit = on_submit
        self.result_customer = None
        self.setWindowTitle("Edit Customer" if wizard.is_editing else "Add New Customer")
        self.setModal(True)
        self.resize(560, 420)

        self.lab_step = QLabel()
        self.pages = QStackedWidget()
        self.pages.addWidget(self._personal_page())
        self.pages.addWidget(self._address_page())
        self.pages.addWidget(self._review_page())

        self.btn_back = QPushButton()
        self.btn_next = QPushButton("Next")
        self.btn_submit = QPushButton("Submit")
        self.btn_back.clicked.connect(self._back)
        self.btn_next.clicked.connect(self._next)
        self.btn_submit.clicked.connect(self._submit)

        bar = QHBoxLayout()
        bar.addWidget(self.btn_back); bar.addStretch(1)
        bar.addWidget(self.btn_next); bar.addWidget(self.btn_submit)

        lay = QVBoxLayout(self)
        lay.addWidget(self.lab_step)
        lay.addWidget(self.pages, 1)
        lay.addLayout(bar)

        self._fill_from_wizard()
        self._sync_view()

    # -------- Pages --------
    def _personal_page(self) -> QWidget:
        w = QWidget()
        self.ed_name = QLineEdit(); self.ed_name.setPlaceholderText("John Doe")
        self.ed_email = QLineEdit(); self.ed_email.setPlaceholderText("john@acme.io")
        self.ed_phone = QLineEdit(); self.ed_phone.setPlaceholderText("+1 (555) 123-4567")
        self.err = {
            "full_name": _error_label(),
            "email": _error_label(),
            "phone": _error_label(),
        }
        form = QFormLayout(w)
        form.addRow("Full Name", self.ed_name); form.addRow("", self.err["full_name"])
        form.addRow("Email", self.ed_email); form.addRow("", self.err["email"])
        form.addRow("Phone", self.ed_phone); form.addRow("", self.err["phone"])
        form.addRow("", QLabel("Either email or phone is required"))
        return w

    def _address_page(self) -> QWidget:
        w = QWidget()
        self.ed_billing = QTextEdit()
        self.chk_same = QCheckBox("Shipping address same as billing")
        self.lab_shipping = QLabel("Shipping Address")
        self.ed_shipping = QTextEdit()
        self.err["billing_address"] = _error_label()
        self.err["shipping_same_as_billing"] = _error_label()
        self.err["shipping_address"] = _error_label()
        self.chk_same.toggled.connect(self._toggle_shipping)

        lay = QVBoxLayout(w)
        lay.addWidget(QLabel("Billing Address")); lay.addWidget(self.ed_billing)
        lay.addWidget(self.err["billing_address"])
        lay.addWidget(self.chk_same); lay.addWidget(self.err["shipping_same_as_billing"])
        lay.addWidget(self.lab_shipping); lay.addWidget(self.ed_shipping)
        lay.addWidget(self.err["shipping_address"])
        return w

    def _review_page(self) -> QWidget:
        w = QWidget()
        lay = QVBoxLayout(w)
        self.review_boxes: Dict[Step, QLabel] = {}
        for step in (Step.PERSONAL, Step.ADDRESS):
            grp = QGroupBox(step.title); g = QVBoxLayout(grp)
            body = QLabel(); body.setWordWrap(True)
            btn_edit = QPushButton("Edit")
            btn_edit.clicked.connect(lambda _=False, s=step: self._edit_step(s))
            head = QHBoxLayout(); head.addWidget(body, 1); head.addWidget(btn_edit)
            g.addLayout(head)
            self.review_boxes[step] = body
            lay.addWidget(grp)
        lay.addStretch(1)
        return w

    # -------- Sync widgets <-> wizard --------
    def _fill_from_wizard(self):
        d = self.wizard.data
        self.ed_name.setText(d["full_name"] or "")
        self.ed_email.setText(d["email"] or "")
        self.ed_phone.setText(d["phone"] or "")
        self.ed_billing.setPlainText(d["billing_address"] or "")
        self.chk_same.setChecked(bool(d["shipping_same_as_billing"]))
        self.ed_shipping.setPlainText(d["shipping_address"] or "")
        self._toggle_shipping(self.chk_same.isChecked())

    def _collect(self):
        self.wizard.update(
            full_name=self.ed_name.text(),
            email=self.ed_email.text().strip(),
            phone=self.ed_phone.text().strip(),
            billing_address=self.ed_billing.toPlainText(),
            shipping_same_as_billing=self.chk_same.isChecked(),
            shipping_address=self.ed_shipping.toPlainText(),
        )

    def _toggle_shipping(self, same: bool):
        self.lab_shipping.setVisible(not same)
        self.ed_shipping.setVisible(not same)

    def _sync_view(self):
        step = self.wizard.step
        self.pages.setCurrentIndex(int(step) - 1)
        self.lab_step.setText(f"Step {int(step)} of 3: {step.title}")
        self.btn_back.setText("Cancel" if step is Step.PERSONAL else "Back")
        self.btn_next.setVisible(step is not Step.REVIEW)
        self.btn_submit.setVisible(step is Step.REVIEW)
        for field, lab in self.err.items():
            msg = self.wizard.errors.get(field)
            lab.setText(msg or "")
            lab.setVisible(bool(msg))
        if step is Step.REVIEW:
            for s, lines in self.wizard.review():
                self.review_boxes[s].setText("\n".join(f"{k}: {v}" for k, v in lines))
        busy = self.wizard.busy
        self.btn_next.setEnabled(not busy); self.btn_submit.setEnabled(not busy)

    # -------- Actions --------
    def _back(self):
        if not self.wizard.back():
            self.reject()
            return
        self._sync_view()

    def _next(self):
        self._collect()
        self._run(self.wizard.next())
        self._sync_view()

    def _edit_step(self, step: Step):
        self.wizard.jump_to(step)
        self._sync_view()

    def _submit(self):
        self._collect()
        try:
            result = self._run(self.wizard.submit(self._on_submit))
        except (StorageError, CustomerNotFoundError) as e:
            logger.warning("Customer submit failed: %s", e)
            msg = "Failed to update customer" if self.wizard.is_editing else "Failed to add customer"
            QMessageBox.warning(self, "Customers", msg)
            self._sync_view()
            return
        if result is None:
            self._sync_view()
            return
        self.result_customer = result
        self.accept()
