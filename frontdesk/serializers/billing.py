from rest_framework import serializers


class PaymentCreateSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    paymentMethod = serializers.CharField(max_length=32, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InvoiceGenerateSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False)


class DateRangeQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()

    def validate(self, attrs):
        if attrs['startDate'] > attrs['endDate']:
            raise serializers.ValidationError('startDate must not be after endDate')
        return attrs
