import bleach
from django.template import Template, TemplateSyntaxError
from rest_framework import serializers

from onboarding.models import Contract, ContractTemplate


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return str(value) if value is not None else None


class ContractTermsSerializer(serializers.Serializer):
    """Contract terms; used with ``partial=True`` for updates."""
    applicationId = serializers.IntegerField(required=False)
    templateId = serializers.IntegerField(required=False, allow_null=True)
    title = serializers.CharField(max_length=200, required=False)
    contractType = serializers.ChoiceField(source='contract_type', choices=ContractTemplate.TYPE_CHOICES, required=False)
    startDate = serializers.DateField(source='start_date', required=False)
    endDate = serializers.DateField(source='end_date', required=False)
    autoRenew = serializers.BooleanField(source='auto_renew', required=False)
    renewalPeriodMonths = serializers.IntegerField(
        source='renewal_period_months', min_value=1, max_value=120, required=False, allow_null=True
    )
    setupFee = serializers.DecimalField(source='setup_fee', max_digits=14, decimal_places=2, min_value=0, required=False)
    monthlyFee = serializers.DecimalField(source='monthly_fee', max_digits=14, decimal_places=2, min_value=0,
                                          required=False)
    revenueSharePercentage = serializers.DecimalField(
        source='revenue_share_percentage', max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )
    currency = serializers.ChoiceField(choices=Contract.CURRENCY_CHOICES, required=False)
    paymentTerms = serializers.CharField(source='payment_terms', required=False, allow_blank=True)
    specialClauses = serializers.ListField(
        source='special_clauses', child=serializers.CharField(max_length=2000), required=False
    )

    def validate_title(self, v):
        return bleach.clean(v.strip(), tags=[], strip=True)

    def validate_templateId(self, v):
        if v is None:
            return None
        template = ContractTemplate.objects.filter(pk=v, is_active=True).first()
        if template is None:
            raise serializers.ValidationError('Unknown or inactive contract template.')
        return template

    def validate(self, attrs):
        if 'templateId' in attrs:
            attrs['template'] = attrs.pop('templateId')
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and end <= start:
            raise serializers.ValidationError({'endDate': 'The end date must be after the start date.'})
        if attrs.get('auto_renew') and not attrs.get('renewal_period_months'):
            raise serializers.ValidationError({'renewalPeriodMonths': 'Required when the contract auto-renews.'})
        if not self.partial and 'applicationId' not in attrs:
            raise serializers.ValidationError({'applicationId': 'This field is required.'})
        return attrs


class SignSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    signature = serializers.CharField(required=False, allow_blank=True)


class TerminateSerializer(serializers.Serializer):
    reason = serializers.CharField()


class ContractTemplateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    templateType = serializers.ChoiceField(source='template_type', choices=ContractTemplate.TYPE_CHOICES,
                                           required=False, default='PARTNERSHIP')
    description = serializers.CharField(required=False, allow_blank=True)
    content = serializers.CharField()
    isActive = serializers.BooleanField(source='is_active', required=False, default=True)

    def validate_content(self, v):
        try:
            Template('{% load contract_filters %}' + v)
        except TemplateSyntaxError as exc:
            raise serializers.ValidationError(f'Template does not compile: {exc}')
        return v


# ---------------------------------------------------------------------
# Response shapes
# ---------------------------------------------------------------------
def format_contract(c: Contract) -> dict:
    return {
        'id': c.id,
        'contractNumber': c.contract_number,
        'applicationId': c.application_id,
        'hospitalId': c.hospital_id,
        'templateId': c.template_id,
        'title': c.title,
        'contractType': c.contract_type,
        'status': c.status,
        'version': c.version,
        'startDate': _iso(c.start_date),
        'endDate': _iso(c.end_date),
        'autoRenew': c.auto_renew,
        'renewalPeriodMonths': c.renewal_period_months,
        'setupFee': _money(c.setup_fee),
        'monthlyFee': _money(c.monthly_fee),
        'revenueSharePercentage': _money(c.revenue_share_percentage),
        'currency': c.currency,
        'paymentTerms': c.payment_terms,
        'specialClauses': c.special_clauses,
        'content': c.content,
        'documentUrl': c.document_url or None,
        'signedDocumentUrl': c.signed_document_url or None,
        'documentHash': c.document_hash or None,
        'sentAt': _iso(c.sent_at),
        'hospitalSignature': {
            'signedAt': _iso(c.hospital_signed_at),
            'signedBy': c.hospital_signed_by,
            'email': c.hospital_signer_email,
        },
        'operatorSignature': {
            'signedAt': _iso(c.operator_signed_at),
            'signedBy': c.operator_signed_by,
            'email': c.operator_signer_email,
        },
        'activatedAt': _iso(c.activated_at),
        'terminatedAt': _iso(c.terminated_at),
        'terminationReason': c.termination_reason,
        'createdAt': _iso(c.created_at),
    }


def format_template(t: ContractTemplate) -> dict:
    return {
        'id': t.id,
        'name': t.name,
        'templateType': t.template_type,
        'description': t.description,
        'content': t.content,
        'isActive': t.is_active,
        'version': t.version,
        'updatedAt': _iso(t.updated_at),
    }
