"""
Request validation and response shaping for applications, documents,
evaluations and the checklist.

Request fields are camelCase and map onto model fields through
``source``; ``validated_data`` therefore carries model field names.
"""
import re

import bleach
from django.conf import settings
from rest_framework import serializers

from onboarding.models import FACILITY_TYPE_CHOICES, NIGERIAN_STATES, Application, Document, Stage
from onboarding.services.scoring import CATEGORIES

PHONE_RE = re.compile(r'^(\+234|0)[789]\d{9}$')


def _plain(v):
    return bleach.clean((v or '').strip(), tags=[], strip=True)


def _iso(value):
    return value.isoformat() if value else None


class ApplicationSubmitSerializer(serializers.Serializer):
    hospitalName = serializers.CharField(source='hospital_name', max_length=100)
    legalName = serializers.CharField(source='legal_name', max_length=100)
    registrationNumber = serializers.CharField(source='registration_number', max_length=100)
    taxId = serializers.CharField(source='tax_id', max_length=100, required=False, allow_blank=True)
    facilityType = serializers.ChoiceField(source='facility_type', choices=FACILITY_TYPE_CHOICES)
    website = serializers.URLField(required=False, allow_blank=True)

    contactName = serializers.CharField(source='contact_name', max_length=100)
    contactEmail = serializers.EmailField(source='contact_email')
    contactPhone = serializers.CharField(source='contact_phone', max_length=20)
    alternatePhone = serializers.CharField(source='alternate_phone', max_length=20, required=False, allow_blank=True)

    address = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=50)
    state = serializers.CharField(max_length=50)
    lga = serializers.CharField(max_length=50)
    postalCode = serializers.CharField(source='postal_code', max_length=20, required=False, allow_blank=True)

    bedCapacity = serializers.IntegerField(source='bed_capacity', min_value=0)
    staffCount = serializers.IntegerField(source='staff_count', min_value=0, required=False, default=0)
    servicesOffered = serializers.ListField(
        source='services_offered', child=serializers.CharField(max_length=100), allow_empty=False
    )
    specializations = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list)
    hasEmergency = serializers.BooleanField(source='has_emergency', required=False, default=False)
    hasPharmacy = serializers.BooleanField(source='has_pharmacy', required=False, default=False)
    hasLaboratory = serializers.BooleanField(source='has_laboratory', required=False, default=False)
    hasRadiology = serializers.BooleanField(source='has_radiology', required=False, default=False)
    isUrban = serializers.BooleanField(source='is_urban', required=False, default=True)
    hasParking = serializers.BooleanField(source='has_parking', required=False, default=False)
    hasPublicTransport = serializers.BooleanField(source='has_public_transport', required=False, default=False)

    estimatedRevenue = serializers.DecimalField(
        source='estimated_revenue', max_digits=16, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    hasInsurancePartnerships = serializers.BooleanField(source='has_insurance_partnerships', required=False, default=False)
    hasHmoPartnerships = serializers.BooleanField(source='has_hmo_partnerships', required=False, default=False)
    hasGovernmentContracts = serializers.BooleanField(source='has_government_contracts', required=False, default=False)
    yearsInOperation = serializers.IntegerField(source='years_in_operation', min_value=0, required=False, default=0)
    businessPlan = serializers.CharField(source='business_plan', required=False, allow_blank=True)

    def validate_hospitalName(self, v):
        v = _plain(v)
        if len(v) < 3:
            raise serializers.ValidationError('Hospital name must be at least 3 characters.')
        return v

    def validate_legalName(self, v):
        return _plain(v)

    def validate_registrationNumber(self, v):
        v = _plain(v)
        if not v:
            raise serializers.ValidationError('Registration number is required.')
        return v

    def validate_contactName(self, v):
        return _plain(v)

    def validate_contactPhone(self, v):
        v = (v or '').replace(' ', '')
        if not PHONE_RE.match(v):
            raise serializers.ValidationError('Enter a valid Nigerian phone number.')
        return v

    def validate_alternatePhone(self, v):
        v = (v or '').replace(' ', '')
        if v and not PHONE_RE.match(v):
            raise serializers.ValidationError('Enter a valid Nigerian phone number.')
        return v

    def validate_state(self, v):
        v = (v or '').strip()
        if v not in NIGERIAN_STATES:
            raise serializers.ValidationError('Select a valid Nigerian state.')
        return v

    def validate_bedCapacity(self, v):
        minimum = settings.ONBOARDING['MIN_BED_CAPACITY']
        if v < minimum:
            raise serializers.ValidationError(f'Bed capacity must be at least {minimum}.')
        return v

    def validate_servicesOffered(self, v):
        cleaned = [_plain(s) for s in v if _plain(s)]
        if not cleaned:
            raise serializers.ValidationError('List at least one service.')
        return cleaned

    def validate_specializations(self, v):
        return [_plain(s) for s in v if _plain(s)]

    def validate(self, attrs):
        for name in ('address', 'city', 'lga', 'tax_id', 'postal_code'):
            if name in attrs:
                attrs[name] = _plain(attrs[name])
        if not attrs.get('legal_name'):
            attrs['legal_name'] = attrs['hospital_name']
        return attrs


class ApplicationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Application.STATUS_CHOICES, required=False)
    state = serializers.CharField(required=False)
    facilityType = serializers.CharField(required=False)
    q = serializers.CharField(required=False, allow_blank=True)
    sort = serializers.CharField(required=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class EvaluationScoresSerializer(serializers.Serializer):
    facility = serializers.FloatField(min_value=0, max_value=100)
    staffing = serializers.FloatField(min_value=0, max_value=100)
    equipment = serializers.FloatField(min_value=0, max_value=100)
    compliance = serializers.FloatField(min_value=0, max_value=100)
    financial = serializers.FloatField(min_value=0, max_value=100)
    location = serializers.FloatField(min_value=0, max_value=100)
    services = serializers.FloatField(min_value=0, max_value=100)
    reputation = serializers.FloatField(min_value=0, max_value=100)


class EvaluationSerializer(serializers.Serializer):
    """No ``scores`` means an automatic evaluation."""
    scores = EvaluationScoresSerializer(required=False)
    recommendation = serializers.ChoiceField(choices=['APPROVE', 'REVIEW', 'REJECT'], required=False)
    notes = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)
    generalNotes = serializers.CharField(source='general_notes', required=False, allow_blank=True)
    riskAssessment = serializers.CharField(source='risk_assessment', required=False, allow_blank=True)

    def validate_notes(self, v):
        unknown = set(v) - set(CATEGORIES)
        if unknown:
            raise serializers.ValidationError(f"Unknown categories: {', '.join(sorted(unknown))}.")
        return v


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    documentType = serializers.ChoiceField(source='document_type', choices=Document.TYPE_CHOICES)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    expiryDate = serializers.DateField(source='expiry_date', required=False, allow_null=True)
    # Applicants without an account prove ownership with the contact e-mail.
    email = serializers.EmailField(required=False)


class DocumentVerifySerializer(serializers.Serializer):
    verified = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class ChecklistUpdateSerializer(serializers.Serializer):
    completed = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True)


class StageCompleteSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=Stage.choices)
    notes = serializers.CharField(required=False, allow_blank=True)


# ---------------------------------------------------------------------
# Response shapes
# ---------------------------------------------------------------------
def format_application_summary(a: Application) -> dict:
    return {
        'id': a.id,
        'applicationNumber': a.application_number,
        'hospitalName': a.hospital_name,
        'facilityType': a.facility_type,
        'state': a.state,
        'city': a.city,
        'contactName': a.contact_name,
        'contactEmail': a.contact_email,
        'status': a.status,
        'evaluationScore': a.evaluation_score,
        'submittedAt': _iso(a.submitted_at),
        'createdAt': _iso(a.created_at),
    }


def format_application(a: Application) -> dict:
    return {
        **format_application_summary(a),
        'legalName': a.legal_name,
        'registrationNumber': a.registration_number,
        'taxId': a.tax_id,
        'website': a.website,
        'contactPhone': a.contact_phone,
        'alternatePhone': a.alternate_phone,
        'address': a.address,
        'lga': a.lga,
        'postalCode': a.postal_code,
        'bedCapacity': a.bed_capacity,
        'staffCount': a.staff_count,
        'servicesOffered': a.services_offered,
        'specializations': a.specializations,
        'hasEmergency': a.has_emergency,
        'hasPharmacy': a.has_pharmacy,
        'hasLaboratory': a.has_laboratory,
        'hasRadiology': a.has_radiology,
        'isUrban': a.is_urban,
        'hasParking': a.has_parking,
        'hasPublicTransport': a.has_public_transport,
        'estimatedRevenue': str(a.estimated_revenue) if a.estimated_revenue is not None else None,
        'hasInsurancePartnerships': a.has_insurance_partnerships,
        'hasHmoPartnerships': a.has_hmo_partnerships,
        'hasGovernmentContracts': a.has_government_contracts,
        'yearsInOperation': a.years_in_operation,
        'decision': a.decision,
        'rejectionReason': a.rejection_reason,
        'reviewedAt': _iso(a.reviewed_at),
        'approvedAt': _iso(a.approved_at),
        'rejectedAt': _iso(a.rejected_at),
        'withdrawnAt': _iso(a.withdrawn_at),
    }


def format_public_status(a: Application) -> dict:
    contract = getattr(a, 'contract', None)
    return {
        'applicationNumber': a.application_number,
        'hospitalName': a.hospital_name,
        'status': a.status,
        'submittedAt': _iso(a.submitted_at),
        'reviewedAt': _iso(a.reviewed_at),
        'decision': a.decision,
        'rejectionReason': a.rejection_reason,
        'contractStatus': contract.status if contract else None,
    }


def format_document(d: Document) -> dict:
    return {
        'id': d.id,
        'applicationId': d.application_id,
        'documentType': d.document_type,
        'name': d.name,
        'originalFileName': d.original_file_name,
        'url': d.file_url,
        'mimeType': d.mime_type,
        'size': d.size,
        'checksum': d.checksum,
        'isVerified': d.is_verified,
        'verifiedAt': _iso(d.verified_at),
        'verificationNotes': d.verification_notes,
        'expiryDate': _iso(d.expiry_date),
        'createdAt': _iso(d.created_at),
    }


def format_evaluation(e) -> dict:
    return {
        'id': e.id,
        'applicationId': e.application_id,
        'evaluatorId': e.evaluator_id,
        'scores': e.category_scores(),
        'notes': e.notes,
        'totalScore': e.total_score,
        'recommendation': e.recommendation,
        'isAutoGenerated': e.is_auto_generated,
        'generalNotes': e.general_notes,
        'riskAssessment': e.risk_assessment,
        'evaluatedAt': _iso(e.evaluated_at),
    }


def format_checklist_item(i) -> dict:
    return {
        'id': i.id,
        'code': i.code,
        'category': i.category,
        'label': i.label,
        'description': i.description,
        'documentType': i.document_type or None,
        'isRequired': i.is_required,
        'isCompleted': i.is_completed,
        'completedAt': _iso(i.completed_at),
        'completedBy': i.completed_by_id,
        'notes': i.notes,
        'order': i.order_index,
    }
