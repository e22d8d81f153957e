from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ReviewViewSet, ServiceCategoryViewSet, ServiceDeleteRequestViewSet, ServiceViewSet

router = DefaultRouter()
router.register(r"categories", ServiceCategoryViewSet, basename="service-category")
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"service-delete-requests", ServiceDeleteRequestViewSet, basename="service-delete-request")
router.register(r"reviews", ReviewViewSet, basename="review")

urlpatterns = [
    path("api/", include(router.urls)),
]
