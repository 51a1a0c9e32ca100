"""
test_vendor_service.py — Tests for vendor onboarding and moderation

Covers: onboard_vendor (happy path, unique slugs, already_exists,
unauthenticated, validation), update_vendor_settings (owner, stranger,
immutable slug), approve/reject/suspend/reapply lifecycle, and
get_vendor_analytics.

Called by: pytest
Depends on: conftest fixtures (profiles, vendors, products)
"""

from decimal import Decimal

from wedstay.models import ProductStatus, ProfileRole, VendorStatus
from wedstay.schemas.auth import Principal
from wedstay.schemas.results import ErrorKind
from wedstay.services import vendor_service

ONBOARDING = {
    "company_name": "Blue Sky Rentals",
    "description": "Tents and tables",
    "email": "Hello@BlueSky.example",
    "service_areas": "Austin, Dallas , ",
}


# ── Onboarding ────────────────────────────────────────────────────────


class TestOnboardVendor:
    def test_creates_pending_vendor(self, db_session, principal_of, customer):
        result = vendor_service.onboard_vendor(db_session, principal_of(customer), ONBOARDING)
        assert result.success
        v = result.data
        assert v.status == VendorStatus.PENDING
        assert v.slug == "blue-sky-rentals"
        assert v.user_id == customer.id
        assert v.email == "hello@bluesky.example"
        assert v.service_areas == ["Austin", "Dallas"]
        assert Decimal(v.commission_rate) == Decimal("15.00")

    def test_same_name_gets_distinct_slugs(self, db_session, principal_of, make_profile):
        a = vendor_service.onboard_vendor(db_session, principal_of(make_profile("a1")), ONBOARDING)
        b = vendor_service.onboard_vendor(db_session, principal_of(make_profile("b1")), ONBOARDING)
        c = vendor_service.onboard_vendor(db_session, principal_of(make_profile("c1")), ONBOARDING)
        assert [r.data.slug for r in (a, b, c)] == [
            "blue-sky-rentals", "blue-sky-rentals-2", "blue-sky-rentals-3",
        ]

    def test_second_onboarding_already_exists(self, db_session, principal_of, customer):
        vendor_service.onboard_vendor(db_session, principal_of(customer), ONBOARDING)
        again = vendor_service.onboard_vendor(db_session, principal_of(customer), ONBOARDING)
        assert again.error == ErrorKind.ALREADY_EXISTS

    def test_anonymous(self, db_session):
        assert vendor_service.onboard_vendor(db_session, None, ONBOARDING).error == ErrorKind.UNAUTHENTICATED

    def test_principal_without_profile(self, db_session):
        ghost = Principal(auth_id="ghost", email="ghost@example.com")
        assert vendor_service.onboard_vendor(db_session, ghost, ONBOARDING).error == ErrorKind.FORBIDDEN

    def test_invalid_payload(self, db_session, principal_of, customer):
        result = vendor_service.onboard_vendor(db_session, principal_of(customer), {"company_name": " "})
        assert result.error == ErrorKind.VALIDATION_FAILED
        assert "company_name" in result.message


# ── Settings ──────────────────────────────────────────────────────────


class TestUpdateSettings:
    def test_owner_updates_fields_slug_kept(self, db_session, principal_of, vendor_owner, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(vendor_owner), vendor.id,
            {"company_name": "Bloom Events", "website": "  "},
        )
        assert result.success
        assert result.data.company_name == "Bloom Events"
        assert result.data.slug == "bloom-rentals"
        assert result.data.website is None

    def test_stranger_forbidden(self, db_session, principal_of, rival_owner, rival_vendor, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(rival_owner), vendor.id, {"description": "hijacked"}
        )
        assert result.error == ErrorKind.FORBIDDEN
        db_session.refresh(vendor)
        assert vendor.description != "hijacked"

    def test_slug_not_editable(self, db_session, principal_of, vendor_owner, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(vendor_owner), vendor.id, {"slug": "new-slug"}
        )
        assert result.error == ErrorKind.VALIDATION_FAILED

    def test_missing_vendor(self, db_session, principal_of, admin):
        result = vendor_service.update_vendor_settings(db_session, principal_of(admin), 404, {})
        assert result.error == ErrorKind.NOT_FOUND

    def test_null_company_name_rejected(self, db_session, principal_of, vendor_owner, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(vendor_owner), vendor.id, {"company_name": None}
        )
        assert result.error == ErrorKind.VALIDATION_FAILED
        db_session.refresh(vendor)
        assert vendor.company_name == "Bloom Rentals"

    def test_blank_company_name_rejected(self, db_session, principal_of, vendor_owner, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(vendor_owner), vendor.id, {"company_name": "    "}
        )
        assert result.error == ErrorKind.VALIDATION_FAILED

    def test_company_name_stripped(self, db_session, principal_of, vendor_owner, vendor):
        result = vendor_service.update_vendor_settings(
            db_session, principal_of(vendor_owner), vendor.id, {"company_name": "  Bloom Events "}
        )
        assert result.data.company_name == "Bloom Events"


# ── Lifecycle ─────────────────────────────────────────────────────────


class TestVendorLifecycle:
    def test_approve_stamps_and_promotes(self, db_session, principal_of, admin, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.PENDING)
        result = vendor_service.approve_vendor(db_session, principal_of(admin), v.id)
        assert result.success
        assert v.status == VendorStatus.APPROVED
        assert v.approved_at is not None
        db_session.refresh(customer)
        assert customer.role == ProfileRole.VENDOR

    def test_approve_twice_is_idempotent(self, db_session, principal_of, admin, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.PENDING)
        vendor_service.approve_vendor(db_session, principal_of(admin), v.id)
        again = vendor_service.approve_vendor(db_session, principal_of(admin), v.id)
        assert again.success
        assert v.status == VendorStatus.APPROVED

    def test_reject_after_approve_is_invalid(self, db_session, principal_of, admin, vendor):
        result = vendor_service.reject_vendor(db_session, principal_of(admin), vendor.id, {"reason": "late"})
        assert result.error == ErrorKind.INVALID_TRANSITION
        db_session.refresh(vendor)
        assert vendor.status == VendorStatus.APPROVED

    def test_reject_requires_reason(self, db_session, principal_of, admin, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.PENDING)
        result = vendor_service.reject_vendor(db_session, principal_of(admin), v.id, {"reason": ""})
        assert result.error == ErrorKind.VALIDATION_FAILED

    def test_non_admin_cannot_approve(self, db_session, principal_of, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.PENDING)
        result = vendor_service.approve_vendor(db_session, principal_of(customer), v.id)
        assert result.error == ErrorKind.FORBIDDEN
        db_session.refresh(v)
        assert v.status == VendorStatus.PENDING

    def test_reject_then_reapply(self, db_session, principal_of, admin, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.PENDING)
        vendor_service.reject_vendor(db_session, principal_of(admin), v.id, {"reason": "No insurance"})
        assert v.rejection_reason == "No insurance"
        result = vendor_service.reapply_vendor(db_session, principal_of(customer), v.id)
        assert result.success
        assert v.status == VendorStatus.PENDING
        assert v.rejection_reason is None

    def test_admin_cannot_reapply_for_owner(self, db_session, principal_of, admin, customer, make_vendor):
        v = make_vendor(customer, "Petal Co", VendorStatus.REJECTED)
        result = vendor_service.reapply_vendor(db_session, principal_of(admin), v.id)
        assert result.error == ErrorKind.FORBIDDEN

    def test_suspend(self, db_session, principal_of, admin, vendor):
        assert vendor_service.suspend_vendor(db_session, principal_of(admin), vendor.id).success
        assert vendor.status == VendorStatus.SUSPENDED


# ── Analytics ─────────────────────────────────────────────────────────


class TestVendorAnalytics:
    def test_totals_and_conversion(self, db_session, principal_of, vendor_owner, vendor, make_product):
        make_product(vendor, "Chair", views=200, inquiries=10, cart_adds=5)
        make_product(vendor, "Arch", ProductStatus.DRAFT, views=0, inquiries=0)
        result = vendor_service.get_vendor_analytics(db_session, principal_of(vendor_owner))
        data = result.data
        assert data["total_views"] == 200
        assert data["total_inquiries"] == 10
        assert data["conversion_rate"] == 5.0
        assert data["products_by_status"]["approved"] == 1
        assert data["products_by_status"]["draft"] == 1

    def test_customer_has_no_vendor(self, db_session, principal_of, customer):
        result = vendor_service.get_vendor_analytics(db_session, principal_of(customer))
        assert result.error == ErrorKind.NOT_FOUND
