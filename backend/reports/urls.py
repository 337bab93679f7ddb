"""
Reports app URL configuration.

Included from the project ``urls.py`` as::

    path("api/", include("reports.urls")),
"""

from rest_framework.routers import DefaultRouter

from .views import ReportViewSet

router = DefaultRouter()
router.register(
    prefix=r"reports",
    viewset=ReportViewSet,
    basename="report",
)

urlpatterns = router.urls
