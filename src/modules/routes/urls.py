"""Route URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.routes.views import RouteViewSet

router = DefaultRouter(trailing_slash=True)
router.register("routes", RouteViewSet, basename="route")

urlpatterns = router.urls
