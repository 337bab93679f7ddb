"""
Incidents app URL configuration.

Included from the project ``urls.py`` as::

    path("api/", include("incidents.urls")),
"""

from rest_framework.routers import DefaultRouter

from .views import IncidentViewSet

router = DefaultRouter()
router.register(
    prefix=r"incidents",
    viewset=IncidentViewSet,
    basename="incident",
)

urlpatterns = router.urls
