from __future__ import annotations

from rest_framework import serializers

from tokenman.models import Shop


class ShopSerializer(serializers.ModelSerializer):
    average_service_time_minutes = serializers.IntegerField(source="average_service_time", read_only=True)

    class Meta:
        model = Shop
        fields = (
            "id",
            "code",
            "name",
            "average_service_time_minutes",
            "location_lat",
            "location_lng",
            "is_active",
        )


class LocationSerializer(serializers.Serializer):
    lat = serializers.FloatField()
    lng = serializers.FloatField()


class TokenIssueSerializer(serializers.Serializer):
    """
    POST /api/tokens

    Notas:
    - Faixas de lat/lng e distância são validadas pelo TokenIssuer (InvalidInput)
    - distance_meters é opcional quando a loja tem localização cadastrada
    - idempotency_key também pode vir no header Idempotency-Key
    """

    shop_id = serializers.CharField(max_length=64)
    customer_location = LocationSerializer()
    distance_meters = serializers.FloatField(required=False, allow_null=True)
    idempotency_key = serializers.CharField(required=False, allow_blank=False, max_length=128)


class ScanSerializer(serializers.Serializer):
    """
    POST /api/tokens/scan

    `payload` é o texto lido do QR: JSON {"token_id": ...} ou o id puro.
    """

    payload = serializers.JSONField()


class TokenRecordSerializer(serializers.Serializer):
    """Serializa TokenRecord (snapshot do núcleo) para a API."""

    token_id = serializers.CharField(source="id")
    token_number = serializers.CharField()
    shop_id = serializers.CharField()
    status = serializers.CharField()
    customer_location = serializers.SerializerMethodField()
    distance_meters = serializers.FloatField()
    traffic_duration_minutes = serializers.IntegerField()
    backlog_count = serializers.IntegerField()
    estimated_pickup_time = serializers.DateTimeField()
    created_at = serializers.DateTimeField()
    preparing_at = serializers.DateTimeField(allow_null=True)
    served_at = serializers.DateTimeField(allow_null=True)
    cancelled_at = serializers.DateTimeField(allow_null=True)

    def get_customer_location(self, obj) -> dict:
        return {"lat": obj.customer_location.lat, "lng": obj.customer_location.lng}


class ShopQueueSerializer(serializers.Serializer):
    shop_id = serializers.CharField()
    backlog_count = serializers.IntegerField()
    average_service_time_minutes = serializers.IntegerField()
    queue_wait_minutes = serializers.IntegerField()
