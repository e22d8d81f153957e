import logging
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from .models import Review, Service, ServiceCategory, ServiceDeleteRequest
from .serializers import (
    ReviewSerializer,
    ServiceCategorySerializer,
    ServiceDeleteRequestSerializer,
    ServiceSerializer,
)
from . import services
from utils.permission_helpers import ActionPermissionMixin, IsAdminUser, IsTourist, IsVendor, IsVendorOrAdmin
from utils.queryset_helpers import FilterableQuerysetMixin, RoleFilterableQuerysetMixin, SearchableQuerysetMixin
from utils.validators import ServiceValidators, VendorValidators

logger = logging.getLogger("listings")


class ServiceCategoryViewSet(ActionPermissionMixin, viewsets.ModelViewSet):
    """
    Service categories. Anyone can browse them, only admins manage them.
    """

    queryset = ServiceCategory.objects.all()
    serializer_class = ServiceCategorySerializer
    permission_classes = [IsAdminUser]
    action_permission_classes = {
        "list": [AllowAny],
        "retrieve": [AllowAny],
    }


class ServiceViewSet(ActionPermissionMixin, FilterableQuerysetMixin, SearchableQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for service listings.

    The public sees approved services, vendors their own, admins all.
    Create, update and delete are delegated to listings.services so that
    attribute whitelisting and ownership checks live in one place.
    """

    queryset = Service.objects.select_related("vendor", "category")
    serializer_class = ServiceSerializer
    permission_classes = [IsVendorOrAdmin]
    action_permission_classes = {
        "list": [AllowAny],
        "retrieve": [AllowAny],
        "create": [IsVendor],
        "moderate": [IsAdminUser],
        "request_delete": [IsVendor],
    }
    filter_fields = ["status", "category__kind"]
    search_fields = ["title", "description", "location"]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user and user.is_authenticated and user.role == "admin":
            return qs
        if user and user.is_authenticated and user.role == "vendor":
            return qs.filter(vendor__user=user)
        return qs.filter(status="approved")

    def _vendor_id_for(self, user):
        # Admin edits run without vendor context
        if user.role == "admin":
            return None
        return VendorValidators.get_vendor_for_user(user).id

    def create(self, request, *args, **kwargs):
        vendor = VendorValidators.get_vendor_for_user(request.user)
        service = services.create_service(vendor, request.data, user=request.user)
        return Response(self.get_serializer(service).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        service = services.update_service(
            kwargs["pk"], self._vendor_id_for(request.user), request.data, user=request.user
        )
        return Response(self.get_serializer(service).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        services.delete_service(
            kwargs["pk"], vendor_id=self._vendor_id_for(request.user), user=request.user
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="moderate")
    def moderate(self, request, pk=None):
        """Approve or reject a service"""
        service = services.moderate_service(pk, request.data.get("status"), request.user)
        return Response(self.get_serializer(service).data)

    @action(detail=True, methods=["post"], url_path="delete-request")
    def request_delete(self, request, pk=None):
        """File a delete request for one of the vendor's services"""
        vendor = VendorValidators.get_vendor_for_user(request.user)
        delete_request = services.create_delete_request(pk, vendor, request.data.get("reason"))
        return Response(
            ServiceDeleteRequestSerializer(delete_request).data,
            status=status.HTTP_201_CREATED,
        )


class ServiceDeleteRequestViewSet(ActionPermissionMixin, RoleFilterableQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    Service delete requests. Vendors see their own, admins see and review all.
    """

    queryset = ServiceDeleteRequest.objects.select_related("vendor", "service")
    serializer_class = ServiceDeleteRequestSerializer
    permission_classes = [IsVendorOrAdmin]
    action_permission_classes = {"review": [IsAdminUser]}
    filter_fields = ["status"]
    default_ordering = ["-requested_at"]

    @action(detail=True, methods=["post"], url_path="review")
    def review(self, request, pk=None):
        """Approve (deleting the service) or reject a delete request"""
        delete_request = services.review_delete_request(
            pk,
            request.data.get("status"),
            request.user,
            admin_notes=request.data.get("admin_notes", ""),
        )
        return Response(self.get_serializer(delete_request).data)


class ReviewViewSet(ActionPermissionMixin, FilterableQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    Booking reviews.

    The public sees approved reviews, tourists their own, vendors the
    reviews of their services and admins all of them. Tourists write
    reviews, admins approve or reject them.
    """

    queryset = Review.objects.select_related("tourist", "service", "vendor")
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]
    action_permission_classes = {
        "create": [IsTourist],
        "moderate": [IsAdminUser],
    }
    filter_fields = ["status"]

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("service"):
            qs = qs.filter(service_id=params["service"])
        if params.get("rating"):
            qs = qs.filter(rating=ServiceValidators.validate_non_negative_int(params["rating"], "rating"))

        user = self.request.user
        if user and user.is_authenticated and user.role == "admin":
            return qs
        if user and user.is_authenticated and user.role == "vendor":
            return qs.filter(vendor__user=user)
        if user and user.is_authenticated and user.role == "tourist":
            return qs.filter(tourist=user)
        return qs.filter(status="approved")

    def create(self, request, *args, **kwargs):
        review = services.create_review(
            request.data.get("booking_id"),
            request.user,
            request.data.get("rating"),
            comment=request.data.get("comment", ""),
        )
        return Response(self.get_serializer(review).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="moderate")
    def moderate(self, request, pk=None):
        """Approve or reject a review"""
        review = services.moderate_review(
            pk,
            request.data.get("status"),
            request.user,
            admin_notes=request.data.get("admin_notes", ""),
        )
        return Response(self.get_serializer(review).data)
