"""
URL mappings for the onboarding API.

Trailing slashes are deliberately omitted (``APPEND_SLASH`` is off).
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import applications, contracts, documents, evaluations, health, reports

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),
    # Applications
    path('api/applications', applications.applications),
    path('api/applications/status/<str:application_number>', applications.application_status_lookup),
    path('api/applications/<int:pk>', applications.application_detail),
    path('api/applications/<int:pk>/status', applications.application_status_update),
    path('api/applications/<int:pk>/progress', applications.application_progress),
    path('api/applications/<int:pk>/checklist', applications.application_checklist),
    path('api/applications/<int:pk>/stages', applications.application_stage_complete),
    path('api/applications/<int:pk>/documents', documents.application_documents),
    path('api/applications/<int:pk>/evaluate', evaluations.application_evaluate),
    path('api/applications/<int:pk>/contract', contracts.application_contract),
    # Documents and checklist
    path('api/documents/<int:pk>/verify', documents.document_verify),
    path('api/documents/<int:pk>', documents.document_delete),
    path('api/checklist/<int:pk>', applications.checklist_item_update),
    # Contracts
    path('api/contracts', contracts.contract_create),
    path('api/contracts/<int:pk>', contracts.contract_detail),
    path('api/contracts/<int:pk>/send', contracts.contract_send),
    path('api/contracts/<int:pk>/sign/hospital', contracts.contract_sign_hospital),
    path('api/contracts/<int:pk>/sign/operator', contracts.contract_sign_operator),
    path('api/contracts/<int:pk>/terminate', contracts.contract_terminate),
    path('api/contract-templates', contracts.contract_templates),
    path('api/contract-templates/<int:pk>', contracts.contract_template_detail),
    # Dashboard
    path('api/onboarding/metrics', reports.onboarding_metrics),
    path('api/onboarding/export/<str:fmt>', reports.onboarding_export),
]
