"""Hospital partner onboarding application.

This package contains models, services, serializers, views and route
registrations for the partner onboarding pipeline: application intake,
document verification, evaluation, contracting and promotion of an
approved application into an active partner hospital.
"""
