from rest_framework.routers import DefaultRouter

from .views import ProductCategoryViewSet, SkuViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r"skus", SkuViewSet, basename="sku")
router.register(r"sku-categories", ProductCategoryViewSet, basename="sku-category")

urlpatterns = router.urls
