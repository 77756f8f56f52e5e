from rest_framework import serializers


class ConsultationSerializer(serializers.Serializer):
    chiefComplaints = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    comorbidities = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    imagingFindings = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    diagnosis = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    treatmentPlan = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    followUpNotes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    vitals = serializers.JSONField(required=False, allow_null=True)


class MediaUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
