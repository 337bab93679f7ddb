"""
Alerts app URL configuration.

Included from the project ``urls.py`` as::

    path("api/", include("alerts.urls")),
"""

from rest_framework.routers import DefaultRouter

from .views import AlertViewSet

router = DefaultRouter()
router.register(
    prefix=r"alerts",
    viewset=AlertViewSet,
    basename="alert",
)

urlpatterns = router.urls
