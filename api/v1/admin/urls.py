"""
URL configuration for administrative license endpoints.
"""

from django.urls import path

from api.v1.admin import views

urlpatterns = [
    path(
        "licenses/",
        views.GenerateLicenseView.as_view(),
        name="generate-license",
    ),
    path(
        "licenses/<uuid:license_id>/",
        views.LicenseDetailView.as_view(),
        name="license-detail",
    ),
    path(
        "licenses/<uuid:license_id>/revoke/",
        views.RevokeLicenseView.as_view(),
        name="revoke-license",
    ),
    path(
        "licenses/<uuid:license_id>/suspend/",
        views.SuspendLicenseView.as_view(),
        name="suspend-license",
    ),
    path(
        "licenses/<uuid:license_id>/reactivate/",
        views.ReactivateLicenseView.as_view(),
        name="reactivate-license",
    ),
    path(
        "licenses/<uuid:license_id>/extend/",
        views.ExtendLicenseView.as_view(),
        name="extend-license",
    ),
]
