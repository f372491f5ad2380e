"""Tests for the customer validation ruleset."""

import pytest

from core.services.validation import (
    DUPLICATE_EMAIL,
    EITHER_CONTACT_REQUIRED,
    REQUIRED,
    SHIPPING_REQUIRED,
    check_email_unique,
    validate_customer,
    validate_fields,
)

from conftest import valid_payload


class TestFieldRules:
    def test_valid_payload_has_no_errors(self):
        assert validate_customer(valid_payload()) == {}

    @pytest.mark.parametrize("name, message", [
        ("J", "Name must be at least 2 characters"),
        ("x" * 101, "Name must be at most 100 characters"),
        ("", "Name must be at least 2 characters"),
    ])
    def test_full_name_length(self, name, message):
        assert validate_customer(valid_payload(full_name=name))["full_name"] == message

    def test_missing_full_name_is_required(self):
        data = valid_payload()
        del data["full_name"]
        assert validate_customer(data)["full_name"] == REQUIRED

    def test_invalid_email(self):
        assert validate_customer(valid_payload(email="not-an-email"))["email"] == "Invalid email"

    @pytest.mark.parametrize("phone", ["+1 (555) 123-4567", "0131 555 0101", "555-0101"])
    def test_accepted_phones(self, phone):
        assert validate_customer(valid_payload(email="", phone=phone)) == {}

    @pytest.mark.parametrize("phone", ["call me", "555-0101 ext. 4", "+44#131"])
    def test_rejected_phones(self, phone):
        assert validate_customer(valid_payload(phone=phone))["phone"] == "Invalid phone format"

    def test_short_billing_address(self):
        assert validate_customer(valid_payload(billing_address="1 Rd"))["billing_address"] == "Address too short"

    def test_shipping_flag_required(self):
        assert validate_customer(valid_payload(shipping_same_as_billing=None))["shipping_same_as_billing"] == REQUIRED


class TestCrossFieldRules:
    @pytest.mark.parametrize("email, phone", [("", ""), (None, None), ("   ", "")])
    def test_either_email_or_phone(self, email, phone):
        """Missing both contacts fails on the email field."""
        errors = validate_customer(valid_payload(email=email, phone=phone))
        assert errors == {"email": EITHER_CONTACT_REQUIRED}

    def test_phone_alone_is_enough(self):
        assert validate_customer(valid_payload(email="", phone="555 0101")) == {}

    def test_contact_rule_waits_for_field_rules(self):
        """An invalid phone reports its own error, not the cross-field one."""
        errors = validate_customer(valid_payload(email="", phone="abc"))
        assert errors == {"phone": "Invalid phone format"}

    @pytest.mark.parametrize("shipping", ["", "   ", None])
    def test_shipping_required_when_different(self, shipping):
        errors = validate_customer(valid_payload(shipping_same_as_billing=False, shipping_address=shipping))
        assert errors == {"shipping_address": SHIPPING_REQUIRED}

    def test_shipping_given_when_different(self):
        data = valid_payload(shipping_same_as_billing=False, shipping_address="7 Dock Street, Dundee")
        assert validate_customer(data) == {}


class TestFieldSubsets:
    def test_subset_ignores_other_fields(self):
        """Step 1 fields validate even while step 2 is still empty."""
        data = valid_payload(billing_address="")
        assert validate_customer(data, ("full_name", "email", "phone")) == {}

    def test_subset_runs_its_cross_field_rule(self):
        data = valid_payload(email="", phone="", billing_address="")
        errors = validate_customer(data, ("full_name", "email", "phone"))
        assert errors == {"email": EITHER_CONTACT_REQUIRED}

    def test_address_subset(self):
        data = valid_payload(full_name="", billing_address="short", shipping_same_as_billing=False)
        errors = validate_customer(data, ("billing_address", "shipping_same_as_billing", "shipping_address"))
        assert errors == {"billing_address": "Address too short", "shipping_address": SHIPPING_REQUIRED}


class TestEmailUniqueness:
    @pytest.mark.asyncio
    async def test_duplicate_detected(self, repository):
        await repository.create(valid_payload(email="taken@acme.io"))
        assert await check_email_unique("TAKEN@acme.io", repository) == DUPLICATE_EMAIL

    @pytest.mark.asyncio
    async def test_blank_email_skips_lookup(self, repository):
        assert await check_email_unique("", repository) is None

    @pytest.mark.asyncio
    async def test_unchanged_email_on_edit_is_skipped(self, repository):
        await repository.create(valid_payload(email="me@acme.io"))
        assert await check_email_unique("Me@acme.io", repository, original_email="me@acme.io") is None

    @pytest.mark.asyncio
    async def test_changed_email_on_edit_is_checked(self, repository):
        """Editing to another customer's email is still a duplicate."""
        await repository.create(valid_payload(email="me@acme.io"))
        await repository.create(valid_payload(email="you@acme.io"))
        assert await check_email_unique("you@acme.io", repository, original_email="me@acme.io") == DUPLICATE_EMAIL

    @pytest.mark.asyncio
    async def test_validate_fields_adds_duplicate_error(self, repository):
        await repository.create(valid_payload(email="taken@acme.io"))
        errors = await validate_fields(valid_payload(email="taken@acme.io"), ("full_name", "email", "phone"), repository)
        assert errors == {"email": DUPLICATE_EMAIL}

    @pytest.mark.asyncio
    async def test_validate_fields_skips_lookup_on_invalid_email(self, repository, memory_store):
        memory_store.fail_with = OSError("should not be reached")
        errors = await validate_fields(valid_payload(email="bad"), ("email",), repository)
        assert errors == {"email": "Invalid email"}
