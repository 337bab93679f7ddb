"""
Officers app URL configuration.

Included from the project ``urls.py`` as::

    path("api/", include("officers.urls")),

Routes
------
  /api/officers/                         → list / create
  /api/officers/{id}/                    → retrieve / partial_update
  POST /api/officers/{id}/deactivate/    → soft-delete
  GET  /api/officers/{officer_pk}/shifts/ → the officer's shifts (nested)
"""

from rest_framework.routers import DefaultRouter
from rest_framework_nested import routers as nested_routers

from shifts.views import OfficerShiftViewSet

from .views import OfficerViewSet

router = DefaultRouter()
router.register(
    prefix=r"officers",
    viewset=OfficerViewSet,
    basename="officer",
)

# Parent lookup kwarg → officer_pk
shifts_router = nested_routers.NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"officers",
    lookup="officer",
)
shifts_router.register(
    prefix=r"shifts",
    viewset=OfficerShiftViewSet,
    basename="officer-shift",
)

urlpatterns = [
    *router.urls,
    *shifts_router.urls,
]
