from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from tradefair.transactions.api.views import TransactionViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("transactions", TransactionViewSet, basename="transactions")


app_name = "api"
urlpatterns = router.urls
