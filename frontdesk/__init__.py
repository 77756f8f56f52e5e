"""Front desk application for the clinic backend.

This package contains the models, services, serializers, views and route
registrations for patient registration, appointment booking, consultation
notes and billing.
"""
