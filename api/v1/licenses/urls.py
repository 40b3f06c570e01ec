"""
URL configuration for public license endpoints.
"""

from django.urls import path

from api.v1.licenses import views

urlpatterns = [
    path(
        "validate/",
        views.ValidateLicenseView.as_view(),
        name="validate-license",
    ),
    path(
        "public-key/",
        views.PublicKeyView.as_view(),
        name="license-public-key",
    ),
    path(
        "<str:license_key>/status/",
        views.LicenseStatusView.as_view(),
        name="license-status",
    ),
]
