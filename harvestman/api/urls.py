"""
Harvestman API URLs.

Include this in your project's urlpatterns:

    path('api/harvestman/', include('harvestman.api.urls')),
"""

from rest_framework.routers import DefaultRouter

from .views import HarvestViewSet, PreorderViewSet

router = DefaultRouter()
router.register("harvests", HarvestViewSet)
router.register("preorders", PreorderViewSet)

urlpatterns = router.urls
