from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("accounts.urls")),
    path("", include("vendors.urls")),
    path("", include("listings.urls")),
    path("", include("bookingsystem.urls")),
    path("", include("payment.urls")),
]
