"""
Shifts app URL configuration.

Included from the project ``urls.py`` as::

    path("api/", include("shifts.urls")),

Routes
------
  /api/shifts/                    → list / create
  /api/shifts/{id}/               → retrieve / partial_update / destroy
  POST /api/shifts/{id}/status/   → lifecycle transition
  GET  /api/shifts/upcoming/      → shifts starting in a window
  POST /api/shifts/validate/      → dry-run validation

The per-officer listing lives under ``/api/officers/{officer_pk}/shifts/``
(see ``officers.urls``).
"""

from rest_framework.routers import DefaultRouter

from .views import ShiftViewSet

router = DefaultRouter()
router.register(
    prefix=r"shifts",
    viewset=ShiftViewSet,
    basename="shift",
)

urlpatterns = router.urls
