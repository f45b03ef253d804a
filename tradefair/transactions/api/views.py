from __future__ import annotations

from rest_framework import mixins
from rest_framework.viewsets import GenericViewSet

from tradefair.transactions.models import Transaction

from .permissions import IsOwnerOrTransactionAdmin
from .permissions import is_transaction_admin
from .serializers import TransactionSerializer
from .serializers import TransactionStatusSerializer


class TransactionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    GenericViewSet,
):
    """Deposits and withdrawals.

    - list/retrieve: own transactions (admins see everything)
    - create: raises a pending request for request.user
    - partial_update: admins complete or reject a pending request
    """

    permission_classes = [IsOwnerOrTransactionAdmin]
    serializer_class = TransactionSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        qs = Transaction.objects.select_related("user")
        if not self.request.user.is_authenticated:
            # Schema generation runs without a user
            return qs.none()
        if is_transaction_admin(self.request.user):
            status_filter = self.request.query_params.get("status")
            if status_filter:
                qs = qs.filter(status=status_filter)
            return qs
        return qs.filter(user=self.request.user)

    def get_serializer_class(self):
        if self.action == "partial_update":
            return TransactionStatusSerializer
        return self.serializer_class

    def perform_create(self, serializer):
        serializer.save(user=self.request.user, status=Transaction.Status.PENDING)
