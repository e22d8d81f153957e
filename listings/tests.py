from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from exceptions.handlers import (
    AlreadyExistsException,
    InvalidInputException,
    NotFoundException,
    PermissionDeniedException,
)
from utils.constants import ReviewMessage, ServiceMessage
from utils.service_helpers import ServiceHelpers
from bookingsystem.models import Booking
from .models import Review, Service, ServiceCategory, ServiceDeleteRequest
from . import services

User = get_user_model()

PASSWORD = "Kampala-Trails-2024"


def make_vendor(username, status="approved"):
    user = User.objects.create_user(username, f"{username}@example.com", PASSWORD, role="vendor")
    vendor = user.vendor_profile
    vendor.status = status
    vendor.save()
    return vendor


class ServiceHelpersTest(TestCase):
    """Test cases for the service field whitelist."""

    def test_split_updates(self):
        """Test that keys are routed to columns, attributes or dropped."""
        basic, attributes, dropped = ServiceHelpers.split_updates(
            "hotel",
            {
                "title": "Lakeside Lodge",
                "price": 120,
                "star_rating": 4,
                "tags": ["lake"],
                "itinerary": ["day 1"],
                "is_featured": True,
                "location": None,
            },
        )
        self.assertEqual(basic, {"title": "Lakeside Lodge", "price": 120})
        self.assertEqual(attributes, {"star_rating": 4, "tags": ["lake"]})
        self.assertEqual(sorted(dropped), ["is_featured", "itinerary"])

    def test_category_fields_depend_on_kind(self):
        """Test that a tour key is only accepted for tours."""
        _, tour_attributes, _ = ServiceHelpers.split_updates("tour", {"itinerary": ["day 1"]})
        _, flight_attributes, dropped = ServiceHelpers.split_updates("flight", {"itinerary": ["day 1"]})
        self.assertEqual(tour_attributes, {"itinerary": ["day 1"]})
        self.assertEqual(flight_attributes, {})
        self.assertEqual(dropped, ["itinerary"])

    def test_unknown_kind_only_gets_general_fields(self):
        """Test that an unknown kind falls back to the general attributes."""
        allowed = ServiceHelpers.allowed_attribute_fields("spaceflight")
        self.assertIn("tags", allowed)
        self.assertNotIn("star_rating", allowed)


class ServiceServicesTest(TestCase):
    """Test cases for creating, updating and deleting services."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("lodge_owner")
        self.other_vendor = make_vendor("tour_owner")
        self.hotels = ServiceCategory.objects.create(name="Hotels", kind="hotel")
        self.tours = ServiceCategory.objects.create(name="Tours", kind="tour")
        self.service = Service.objects.create(
            vendor=self.vendor,
            category=self.hotels,
            title="Lakeside Lodge",
            price=Decimal("150000.00"),
            attributes={"star_rating": 3},
        )

    def test_update_drops_unknown_keys_and_refreshes_updated_at(self):
        """Test that unknown keys are dropped and valid keys persisted."""
        stale = timezone.now() - timedelta(days=1)
        Service.objects.filter(pk=self.service.pk).update(updated_at=stale)

        updated = services.update_service(
            self.service.id,
            self.vendor.id,
            {
                "title": "Lakeside Lodge & Spa",
                "price": "175000",
                "star_rating": 4,
                "check_in_time": "14:00",
                "not_a_column": "ignored",
            },
        )

        self.assertEqual(updated.title, "Lakeside Lodge & Spa")
        self.assertEqual(updated.price, Decimal("175000.00"))
        self.assertEqual(updated.attributes, {"star_rating": 4, "check_in_time": "14:00"})
        self.assertNotIn("not_a_column", updated.attributes)
        self.assertGreater(updated.updated_at, stale)

    def test_update_with_category_change_uses_new_whitelist(self):
        """Test that the new category decides which attributes are kept."""
        updated = services.update_service(
            self.service.id,
            self.vendor.id,
            {"category_id": self.tours.id, "itinerary": ["Day 1: Jinja"], "star_rating": 5},
        )
        self.assertEqual(updated.category, self.tours)
        self.assertEqual(updated.attributes["itinerary"], ["Day 1: Jinja"])
        # hotel key is not part of the tour whitelist
        self.assertEqual(updated.attributes["star_rating"], 3)

    def test_update_by_other_vendor(self):
        """Test that a vendor cannot update another vendor's service."""
        with self.assertRaises(PermissionDeniedException) as ctx:
            services.update_service(self.service.id, self.other_vendor.id, {"title": "Hijacked"})
        self.assertEqual(str(ctx.exception.detail), ServiceMessage.SERVICE_NOT_OWNED)
        self.service.refresh_from_db()
        self.assertEqual(self.service.title, "Lakeside Lodge")

    def test_update_missing_service(self):
        """Test that a missing service is reported as not found."""
        with self.assertRaises(NotFoundException) as ctx:
            services.update_service(
                "00000000-0000-0000-0000-000000000000", self.vendor.id, {"title": "Ghost"}
            )
        self.assertEqual(str(ctx.exception.detail), ServiceMessage.SERVICE_NOT_FOUND)

    def test_update_rejects_malformed_typed_columns(self):
        """Test that bad values for typed columns are refused before saving."""
        bad_updates = [
            {"duration_hours": "abc"},
            {"max_capacity": -5},
            {"price": "NaN"},
            {"price": "Infinity"},
            {"price": "1e20"},
            {"images": "not-a-list"},
            {"amenities": ["wifi", 3]},
            {"currency": "US"},
            {"location": "x" * 256},
            {"title": "Lakeside Lodge renamed", "max_capacity": 2.5},
        ]
        for updates in bad_updates:
            with self.subTest(updates=updates):
                with self.assertRaises(InvalidInputException):
                    services.update_service(self.service.id, self.vendor.id, updates)

        self.service.refresh_from_db()
        self.assertEqual(self.service.title, "Lakeside Lodge")
        self.assertEqual(self.service.price, Decimal("150000.00"))
        self.assertIsNone(self.service.max_capacity)

    def test_update_cleans_typed_columns(self):
        """Test that valid typed values are normalised before saving."""
        updated = services.update_service(
            self.service.id,
            self.vendor.id,
            {"duration_hours": "6", "max_capacity": 12, "currency": "usd", "images": ["front.jpg"]},
        )
        self.assertEqual(updated.duration_hours, 6)
        self.assertEqual(updated.max_capacity, 12)
        self.assertEqual(updated.currency, "USD")
        self.assertEqual(updated.images, ["front.jpg"])

    def test_vendor_cannot_approve_own_service(self):
        """Test that approval is reserved for admins."""
        with self.assertRaises(PermissionDeniedException):
            services.update_service(
                self.service.id, self.vendor.id, {"status": "approved"}, user=self.vendor.user
            )

    def test_create_service(self):
        """Test service creation with whitelisted attributes."""
        service = services.create_service(
            self.vendor,
            {
                "category_id": self.tours.id,
                "title": "Source of the Nile",
                "price": "80000",
                "itinerary": ["Boat ride"],
                "room_types": ["double"],
            },
            user=self.vendor.user,
        )
        self.assertEqual(service.status, "pending")
        self.assertEqual(service.currency, "UGX")
        self.assertEqual(service.attributes, {"itinerary": ["Boat ride"]})

    def test_create_service_requires_approved_vendor(self):
        """Test that a pending vendor cannot list services."""
        pending = make_vendor("newcomer", status="pending")
        with self.assertRaises(PermissionDeniedException):
            services.create_service(
                pending, {"category_id": self.tours.id, "title": "Too early", "price": 1}
            )

    def test_delete_without_vendor_requires_admin(self):
        """Test that deleting without vendor context is admin-only."""
        with self.assertRaises(PermissionDeniedException) as ctx:
            services.delete_service(self.service.id, user=self.vendor.user)
        self.assertEqual(str(ctx.exception.detail), ServiceMessage.ADMIN_REQUIRED_FOR_DELETE)

        services.delete_service(self.service.id, user=self.admin)
        self.assertFalse(Service.objects.filter(pk=self.service.id).exists())

    def test_delete_by_owner(self):
        """Test that the owning vendor can delete its service."""
        services.delete_service(self.service.id, vendor_id=self.vendor.id, user=self.vendor.user)
        self.assertFalse(Service.objects.filter(pk=self.service.id).exists())

    def test_moderation(self):
        """Test that admin approval stamps the service."""
        service = services.moderate_service(self.service.id, "approved", self.admin)
        self.assertEqual(service.status, "approved")
        self.assertEqual(service.approved_by, self.admin)

    def test_delete_request_approval_keeps_request(self):
        """Test that approving a delete request removes the service only."""
        delete_request = services.create_delete_request(self.service.id, self.vendor, "Closed for renovation")
        reviewed = services.review_delete_request(
            delete_request.id, "approved", self.admin, admin_notes="ok"
        )

        self.assertEqual(reviewed.status, "approved")
        self.assertIsNone(reviewed.service_id)
        self.assertEqual(reviewed.service_title, "Lakeside Lodge")
        self.assertFalse(Service.objects.filter(pk=self.service.id).exists())

    def test_delete_request_rejection_keeps_service(self):
        """Test that a rejected delete request leaves the service alone."""
        delete_request = services.create_delete_request(self.service.id, self.vendor, "Mistake")
        services.review_delete_request(delete_request.id, "rejected", self.admin)
        self.assertTrue(Service.objects.filter(pk=self.service.id).exists())
        self.assertEqual(ServiceDeleteRequest.objects.get(pk=delete_request.id).status, "rejected")


class ServiceAPITest(APITestCase):
    """Test cases for the service endpoints."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("lodge_owner")
        self.other_vendor = make_vendor("tour_owner")
        self.category = ServiceCategory.objects.create(name="Hotels", kind="hotel")
        self.approved = Service.objects.create(
            vendor=self.vendor, category=self.category, title="Approved lodge",
            price=Decimal("100.00"), status="approved",
        )
        self.pending = Service.objects.create(
            vendor=self.vendor, category=self.category, title="Pending lodge",
            price=Decimal("100.00"), status="pending",
        )

    def test_public_sees_approved_only(self):
        """Test that anonymous visitors only see approved services."""
        response = self.client.get(reverse("service-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["title"] for row in response.data], ["Approved lodge"])

    def test_search_and_kind_filter(self):
        """Test the search and category kind query parameters."""
        Service.objects.create(
            vendor=self.vendor, category=self.category, title="Kidepo safari camp",
            price=Decimal("100.00"), status="approved",
        )
        response = self.client.get(reverse("service-list"), {"search": "safari"})
        self.assertEqual([row["title"] for row in response.data], ["Kidepo safari camp"])

        response = self.client.get(reverse("service-list"), {"category__kind": "tour"})
        self.assertEqual(response.data, [])

    def test_vendor_creates_service(self):
        """Test service creation through the API."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(
            reverse("service-list"),
            {"category_id": self.category.id, "title": "New lodge", "price": "90000", "star_rating": 2},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["attributes"], {"star_rating": 2})
        self.assertEqual(response.data["vendor"]["id"], str(self.vendor.id))

    def test_other_vendor_update_forbidden(self):
        """Test that the ownership message reaches the client."""
        self.client.force_authenticate(self.other_vendor.user)
        response = self.client.patch(
            reverse("service-detail", args=[self.approved.id]), {"title": "Mine now"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"], ServiceMessage.SERVICE_NOT_OWNED)

    def test_malformed_typed_columns_return_400(self):
        """Test that bad typed values are reported as invalid input."""
        self.client.force_authenticate(self.vendor.user)
        for payload in ({"duration_hours": "abc"}, {"max_capacity": -5}, {"price": "NaN"}):
            with self.subTest(payload=payload):
                response = self.client.patch(
                    reverse("service-detail", args=[self.approved.id]), payload, format="json"
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertFalse(response.data["success"])
        self.approved.refresh_from_db()
        self.assertEqual(self.approved.price, Decimal("100.00"))

    def test_admin_moderates_service(self):
        """Test the moderate action."""
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("service-moderate", args=[self.pending.id]), {"status": "approved"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "approved")

    def test_delete_request_flow(self):
        """Test filing and reviewing a delete request through the API."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(
            reverse("service-request-delete", args=[self.approved.id]),
            {"reason": "Sold the property"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        request_id = response.data["id"]

        duplicate = self.client.post(
            reverse("service-request-delete", args=[self.approved.id]),
            {"reason": "Again"},
            format="json",
        )
        self.assertEqual(duplicate.status_code, status.HTTP_409_CONFLICT)

        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("service-delete-request-review", args=[request_id]),
            {"status": "approved", "admin_notes": "Confirmed with owner"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "approved")
        self.assertFalse(Service.objects.filter(pk=self.approved.id).exists())


class ReviewFixturesMixin:
    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("lodge_owner")
        self.other_vendor = make_vendor("tour_owner")
        self.tourist = User.objects.create_user("traveller", "traveller@example.com", PASSWORD)
        self.other_tourist = User.objects.create_user("backpacker", "backpacker@example.com", PASSWORD)
        category = ServiceCategory.objects.create(name="Hotels", kind="hotel")
        self.service = Service.objects.create(
            vendor=self.vendor, category=category, title="Lakeside Lodge",
            price=Decimal("150000.00"), status="approved",
        )
        self.other_service = Service.objects.create(
            vendor=self.other_vendor, category=category, title="Crater Camp",
            price=Decimal("90000.00"), status="approved",
        )
        self.booking = self.make_booking()

    def make_booking(self, tourist=None, service=None, status="completed"):
        service = service or self.service
        return Booking.objects.create(
            service=service,
            vendor=service.vendor,
            tourist=tourist or self.tourist,
            total_amount=service.price,
            status=status,
            payment_status="paid",
        )

    def make_review(self, booking, status="pending", rating=4):
        return Review.objects.create(
            booking=booking,
            service=booking.service,
            vendor=booking.vendor,
            tourist=booking.tourist,
            rating=rating,
            status=status,
        )


class ReviewServicesTest(ReviewFixturesMixin, TestCase):
    """Test cases for writing and moderating reviews."""

    def test_create_review(self):
        """Test that a tourist reviews their own completed booking."""
        review = services.create_review(self.booking.id, self.tourist, "5", comment=" Great views ")
        self.assertEqual(review.status, "pending")
        self.assertEqual(review.rating, 5)
        self.assertEqual(review.comment, "Great views")
        self.assertEqual(review.service, self.service)
        self.assertEqual(review.vendor, self.vendor)

    def test_review_of_other_tourists_booking(self):
        """Test that a tourist cannot review someone else's booking."""
        with self.assertRaises(PermissionDeniedException) as ctx:
            services.create_review(self.booking.id, self.other_tourist, 4)
        self.assertEqual(str(ctx.exception.detail), ReviewMessage.BOOKING_NOT_OWNED)
        self.assertFalse(Review.objects.exists())

    def test_vendor_cannot_review(self):
        with self.assertRaises(PermissionDeniedException) as ctx:
            services.create_review(self.booking.id, self.vendor.user, 4)
        self.assertEqual(str(ctx.exception.detail), ReviewMessage.TOURIST_ROLE_REQUIRED)

    def test_review_requires_completed_booking(self):
        """Test that only completed bookings can be reviewed."""
        booking = self.make_booking(status="confirmed")
        with self.assertRaises(InvalidInputException) as ctx:
            services.create_review(booking.id, self.tourist, 4)
        self.assertEqual(str(ctx.exception.detail), ReviewMessage.BOOKING_NOT_COMPLETED)

    def test_booking_reviewed_once(self):
        """Test that a second review of the same booking is a conflict."""
        services.create_review(self.booking.id, self.tourist, 4)
        with self.assertRaises(AlreadyExistsException):
            services.create_review(self.booking.id, self.tourist, 2)
        self.assertEqual(Review.objects.count(), 1)

    def test_rating_bounds(self):
        """Test that ratings outside 1 to 5 are refused."""
        for rating in (0, 6, "abc", 3.5, True, None):
            with self.subTest(rating=rating):
                with self.assertRaises(InvalidInputException):
                    services.create_review(self.booking.id, self.tourist, rating)

    def test_missing_booking(self):
        with self.assertRaises(NotFoundException):
            services.create_review("00000000-0000-0000-0000-000000000000", self.tourist, 4)

    def test_moderation(self):
        """Test that admin approval stamps the review."""
        review = self.make_review(self.booking)
        moderated = services.moderate_review(review.id, "approved", self.admin, admin_notes="ok")
        self.assertEqual(moderated.status, "approved")
        self.assertEqual(moderated.reviewed_by, self.admin)
        self.assertIsNotNone(moderated.reviewed_at)
        self.assertEqual(moderated.admin_notes, "ok")

    def test_moderated_review_is_final(self):
        """Test that a moderated review cannot be moderated again."""
        review = self.make_review(self.booking, status="rejected")
        with self.assertRaises(InvalidInputException) as ctx:
            services.moderate_review(review.id, "approved", self.admin)
        self.assertEqual(str(ctx.exception.detail), ReviewMessage.ALREADY_MODERATED)

    def test_moderation_requires_admin(self):
        review = self.make_review(self.booking)
        with self.assertRaises(PermissionDeniedException):
            services.moderate_review(review.id, "approved", self.vendor.user)
        review.refresh_from_db()
        self.assertEqual(review.status, "pending")

    def test_invalid_moderation_status(self):
        review = self.make_review(self.booking)
        with self.assertRaises(InvalidInputException):
            services.moderate_review(review.id, "pending", self.admin)


class ReviewAPITest(ReviewFixturesMixin, APITestCase):
    """Test cases for the review endpoints."""

    def setUp(self):
        super().setUp()
        self.approved = self.make_review(self.booking, status="approved", rating=5)
        self.pending = self.make_review(
            self.make_booking(tourist=self.other_tourist, service=self.other_service), rating=2
        )

    def test_public_sees_approved_only(self):
        """Test that anonymous visitors only see approved reviews."""
        response = self.client.get(reverse("review-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [str(self.approved.id)])
        self.assertNotIn("email", response.data[0])

    def test_vendor_sees_own_service_reviews(self):
        """Test that vendors only see reviews of their own services."""
        self.client.force_authenticate(self.other_vendor.user)
        response = self.client.get(reverse("review-list"))
        self.assertEqual([row["id"] for row in response.data], [str(self.pending.id)])

    def test_tourist_sees_own_reviews(self):
        self.client.force_authenticate(self.other_tourist)
        response = self.client.get(reverse("review-list"))
        self.assertEqual([row["id"] for row in response.data], [str(self.pending.id)])

    def test_admin_filters_by_status_and_rating(self):
        """Test the status and rating query parameters."""
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("review-list"), {"status": "pending"})
        self.assertEqual([row["id"] for row in response.data], [str(self.pending.id)])
        response = self.client.get(reverse("review-list"), {"rating": "5"})
        self.assertEqual([row["id"] for row in response.data], [str(self.approved.id)])
        response = self.client.get(reverse("review-list"), {"service": str(self.other_service.id)})
        self.assertEqual([row["id"] for row in response.data], [str(self.pending.id)])

    def test_tourist_creates_review(self):
        """Test review creation through the API."""
        booking = self.make_booking()
        self.client.force_authenticate(self.tourist)
        response = self.client.post(
            reverse("review-list"),
            {"booking_id": str(booking.id), "rating": 4, "comment": "Quiet rooms"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["service_title"], "Lakeside Lodge")

    def test_create_review_error_codes(self):
        """Test the status codes of refused reviews."""
        self.client.force_authenticate(self.other_tourist)
        response = self.client.post(
            reverse("review-list"), {"booking_id": str(self.make_booking().id), "rating": 4}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.tourist)
        response = self.client.post(
            reverse("review-list"), {"booking_id": str(self.booking.id), "rating": 4}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(
            reverse("review-list"), {"booking_id": str(self.make_booking().id), "rating": 9}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], ReviewMessage.RATING_INVALID)

    def test_vendor_cannot_create_review(self):
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(
            reverse("review-list"), {"booking_id": str(self.booking.id), "rating": 4}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_moderates_review(self):
        """Test the moderate action."""
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("review-moderate", args=[self.pending.id]),
            {"status": "approved", "admin_notes": "Checked"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "approved")
        self.assertEqual(response.data["reviewed_by"], self.admin.id)

        again = self.client.post(
            reverse("review-moderate", args=[self.pending.id]), {"status": "rejected"}, format="json"
        )
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tourist_cannot_moderate(self):
        self.client.force_authenticate(self.tourist)
        response = self.client.post(
            reverse("review-moderate", args=[self.pending.id]), {"status": "approved"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
