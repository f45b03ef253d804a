from __future__ import annotations

from typing import Any

from rest_framework import serializers

from tradefair.transactions.models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    """Read/create serializer; new transactions always start pending."""

    class Meta:
        model = Transaction
        fields = (
            "id",
            "user",
            "kind",
            "amount",
            "status",
            "reference",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "user",
            "status",
            "created_at",
            "updated_at",
        )


class TransactionStatusSerializer(serializers.ModelSerializer):
    """Admin decision on a pending transaction."""

    status = serializers.ChoiceField(
        choices=[
            Transaction.Status.COMPLETED,
            Transaction.Status.REJECTED,
        ],
    )

    class Meta:
        model = Transaction
        fields = ("status",)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if self.instance is not None and self.instance.is_settled:
            msg = "Transaction has already been settled."
            raise serializers.ValidationError(msg)
        return attrs

    def to_representation(self, instance: Transaction) -> dict[str, Any]:
        return TransactionSerializer(instance, context=self.context).data
