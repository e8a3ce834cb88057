"""
Database models for the partner onboarding backend.

These models capture the onboarding pipeline: a prospective partner
submits an :class:`Application`, uploads :class:`Document` evidence, is
scored through :class:`EvaluationScore` records, tracked against a
:class:`ChecklistItem` list, and once approved receives a
:class:`Contract`.  When both parties have signed, the application is
promoted into an active :class:`Hospital`.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


# Nigerian states (36 + FCT) and the two-letter codes used in hospital codes.
NIGERIAN_STATES = {
    'Abia': 'AB', 'Adamawa': 'AD', 'Akwa Ibom': 'AK', 'Anambra': 'AN',
    'Bauchi': 'BA', 'Bayelsa': 'BY', 'Benue': 'BN', 'Borno': 'BO',
    'Cross River': 'CR', 'Delta': 'DT', 'Ebonyi': 'EB', 'Edo': 'ED',
    'Ekiti': 'EK', 'Enugu': 'EN', 'FCT': 'FC', 'Gombe': 'GM',
    'Imo': 'IM', 'Jigawa': 'JG', 'Kaduna': 'KD', 'Kano': 'KN',
    'Katsina': 'KT', 'Kebbi': 'KB', 'Kogi': 'KG', 'Kwara': 'KW',
    'Lagos': 'LG', 'Nasarawa': 'NS', 'Niger': 'NG', 'Ogun': 'OG',
    'Ondo': 'ON', 'Osun': 'OS', 'Oyo': 'OY', 'Plateau': 'PL',
    'Rivers': 'RV', 'Sokoto': 'SK', 'Taraba': 'TR', 'Yobe': 'YB',
    'Zamfara': 'ZM',
}

FACILITY_TYPE_CHOICES = [
    ('General Hospital', 'General Hospital'),
    ('Specialist Hospital', 'Specialist Hospital'),
    ('Teaching Hospital', 'Teaching Hospital'),
    ('Primary Healthcare Center', 'Primary Healthcare Center'),
    ('Clinic', 'Clinic'),
    ('Diagnostic Center', 'Diagnostic Center'),
    ('Maternity Home', 'Maternity Home'),
]


class Stage(models.TextChoices):
    """Display stages of the onboarding journey, in order."""
    APPLICATION = 'APPLICATION', 'Application'
    DOCUMENT_SUBMISSION = 'DOCUMENT_SUBMISSION', 'Document submission'
    EVALUATION = 'EVALUATION', 'Evaluation'
    CONTRACT_NEGOTIATION = 'CONTRACT_NEGOTIATION', 'Contract negotiation'
    CONTRACT_SIGNING = 'CONTRACT_SIGNING', 'Contract signing'
    SYSTEM_SETUP = 'SYSTEM_SETUP', 'System setup'
    TRAINING = 'TRAINING', 'Training'
    GO_LIVE = 'GO_LIVE', 'Go-live'
    COMPLETED = 'COMPLETED', 'Completed'


class Hospital(models.Model):
    """A partner hospital.

    A hospital row is created as a ``PENDING`` shell when a contract is
    generated for an approved application and is promoted to ``ACTIVE``
    once that contract has been signed by both parties.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_SUSPENDED = 'SUSPENDED'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    legal_name = models.CharField(max_length=255, blank=True)
    registration_number = models.CharField(max_length=100, blank=True)
    tax_id = models.CharField(max_length=100, blank=True)
    facility_type = models.CharField(max_length=50, choices=FACILITY_TYPE_CHOICES, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    website = models.URLField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=50, db_index=True)
    lga = models.CharField(max_length=100, blank=True)
    bed_capacity = models.PositiveIntegerField(default=0)
    staff_count = models.PositiveIntegerField(default=0)
    services_offered = models.JSONField(default=list, blank=True)
    specializations = models.JSONField(default=list, blank=True)
    has_emergency = models.BooleanField(default=False)
    has_pharmacy = models.BooleanField(default=False)
    has_laboratory = models.BooleanField(default=False)
    has_radiology = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    is_verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    owner = models.ForeignKey(
        'User', null=True, blank=True, on_delete=models.SET_NULL, related_name='owned_hospitals'
    )
    application = models.OneToOneField(
        'Application', null=True, blank=True, on_delete=models.SET_NULL, related_name='hospital'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """Custom user model with a platform role and a primary hospital.

    ``primary_hospital`` is the explicit affiliation used when a user is
    associated with more than one hospital; see
    :func:`onboarding.services.hospitals.resolve_primary_hospital`.
    """
    ROLE_SUPER_ADMIN = 'SUPER_ADMIN'
    ROLE_ADMIN = 'ADMIN'
    ROLE_HOSPITAL_ADMIN = 'HOSPITAL_ADMIN'
    ROLE_DOCTOR = 'DOCTOR'
    ROLE_NURSE = 'NURSE'
    ROLE_RECEPTIONIST = 'RECEPTIONIST'
    ROLE_PATIENT = 'PATIENT'
    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Administrator'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_HOSPITAL_ADMIN, 'Hospital Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
        (ROLE_PATIENT, 'Patient'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    primary_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='affiliated_users'
    )

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Application(models.Model):
    """A hospital's request to join the partner network."""
    STATUS_DRAFT = 'DRAFT'
    STATUS_SUBMITTED = 'SUBMITTED'
    STATUS_UNDER_REVIEW = 'UNDER_REVIEW'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_WITHDRAWN = 'WITHDRAWN'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SUBMITTED, 'Submitted'),
        (STATUS_UNDER_REVIEW, 'Under review'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_WITHDRAWN, 'Withdrawn'),
    ]
    TERMINAL_STATUSES = (STATUS_REJECTED, STATUS_WITHDRAWN)

    application_number = models.CharField(max_length=30, unique=True)

    # Identity
    hospital_name = models.CharField(max_length=100)
    legal_name = models.CharField(max_length=100)
    registration_number = models.CharField(max_length=100)
    tax_id = models.CharField(max_length=100, blank=True)
    facility_type = models.CharField(max_length=50, choices=FACILITY_TYPE_CHOICES)
    website = models.URLField(blank=True)

    # Contact
    contact_name = models.CharField(max_length=100)
    contact_email = models.EmailField(db_index=True)
    contact_phone = models.CharField(max_length=20)
    alternate_phone = models.CharField(max_length=20, blank=True)

    # Address
    address = models.CharField(max_length=200)
    city = models.CharField(max_length=50)
    state = models.CharField(max_length=50, db_index=True)
    lga = models.CharField(max_length=50)
    postal_code = models.CharField(max_length=20, blank=True)

    # Facility facts
    bed_capacity = models.PositiveIntegerField(default=0)
    staff_count = models.PositiveIntegerField(default=0)
    services_offered = models.JSONField(default=list)
    specializations = models.JSONField(default=list, blank=True)
    has_emergency = models.BooleanField(default=False)
    has_pharmacy = models.BooleanField(default=False)
    has_laboratory = models.BooleanField(default=False)
    has_radiology = models.BooleanField(default=False)
    is_urban = models.BooleanField(default=True)
    has_parking = models.BooleanField(default=False)
    has_public_transport = models.BooleanField(default=False)

    # Financial facts
    estimated_revenue = models.DecimalField(max_digits=16, decimal_places=2, null=True, blank=True)
    has_insurance_partnerships = models.BooleanField(default=False)
    has_hmo_partnerships = models.BooleanField(default=False)
    has_government_contracts = models.BooleanField(default=False)
    years_in_operation = models.PositiveIntegerField(default=0)
    business_plan = models.TextField(blank=True)

    # Lifecycle
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SUBMITTED, db_index=True)
    evaluation_score = models.FloatField(null=True, blank=True)
    decision = models.CharField(max_length=20, blank=True)
    rejection_reason = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reviewed_applications'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    decided_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='decided_applications'
    )
    withdrawn_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            # One live application per contact e-mail.
            models.UniqueConstraint(
                fields=['contact_email'],
                condition=~Q(status__in=['REJECTED', 'WITHDRAWN']),
                name='uniq_active_application_per_email',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'created_at'], name='onb_app_status_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.application_number} {self.hospital_name}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class Document(models.Model):
    """Evidence uploaded against an application."""
    TYPE_CHOICES = [
        ('LICENSE', 'Medical license'),
        ('REGISTRATION', 'CAC registration'),
        ('TAX_CERTIFICATE', 'Tax clearance certificate'),
        ('INSURANCE', 'Insurance'),
        ('FACILITY_PHOTOS', 'Facility photos'),
        ('OWNERSHIP_PROOF', 'Proof of ownership'),
        ('STAFF_CREDENTIALS', 'Staff credentials'),
        ('CAC_CERTIFICATE', 'CAC certificate'),
        ('MEDICAL_LICENSE', 'Medical license (additional)'),
        ('INSURANCE_CERTIFICATE', 'Insurance certificate'),
        ('BUILDING_PERMIT', 'Building permit'),
        ('FIRE_SAFETY_CERTIFICATE', 'Fire safety certificate'),
        ('ENVIRONMENTAL_PERMIT', 'Environmental permit'),
        ('OTHER', 'Other'),
    ]

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=32, choices=TYPE_CHOICES, db_index=True)
    name = models.CharField(max_length=255)
    original_file_name = models.CharField(max_length=255)
    storage_name = models.CharField(max_length=512)
    file_url = models.CharField(max_length=512)
    mime_type = models.CharField(max_length=128)
    size = models.PositiveIntegerField(default=0)
    checksum = models.CharField(max_length=64)
    is_verified = models.BooleanField(default=False)
    verified_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='verified_documents'
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_notes = models.TextField(blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='uploaded_documents'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self) -> str:
        return f"{self.document_type}: {self.name}"


class EvaluationScore(models.Model):
    """One scoring of an application, automatic or by a reviewer."""
    RECOMMENDATION_CHOICES = [
        ('APPROVE', 'Approve'),
        ('REVIEW', 'Review'),
        ('PENDING_REVIEW', 'Pending review'),
        ('REJECT', 'Reject'),
    ]

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='evaluations')
    evaluator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='evaluations'
    )
    facility_score = models.FloatField()
    staffing_score = models.FloatField()
    equipment_score = models.FloatField()
    compliance_score = models.FloatField()
    financial_score = models.FloatField()
    location_score = models.FloatField()
    services_score = models.FloatField()
    reputation_score = models.FloatField()
    notes = models.JSONField(default=dict, blank=True)
    total_score = models.FloatField()
    recommendation = models.CharField(max_length=20, choices=RECOMMENDATION_CHOICES)
    is_auto_generated = models.BooleanField(default=False)
    general_notes = models.TextField(blank=True)
    risk_assessment = models.TextField(blank=True)
    evaluated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-evaluated_at', '-id']

    def __str__(self) -> str:
        return f"{self.application_id}: {self.total_score} ({self.recommendation})"

    def category_scores(self) -> dict[str, float]:
        return {
            'facility': self.facility_score,
            'staffing': self.staffing_score,
            'equipment': self.equipment_score,
            'compliance': self.compliance_score,
            'financial': self.financial_score,
            'location': self.location_score,
            'services': self.services_score,
            'reputation': self.reputation_score,
        }


class ChecklistItem(models.Model):
    """One step of an application's onboarding checklist."""
    CATEGORY_DOCUMENTS = 'DOCUMENTS'
    CATEGORY_VERIFICATION = 'VERIFICATION'
    CATEGORY_CONTRACT = 'CONTRACT'
    CATEGORY_SETUP = 'SETUP'
    CATEGORY_CHOICES = [
        (CATEGORY_DOCUMENTS, 'Documents'),
        (CATEGORY_VERIFICATION, 'Verification'),
        (CATEGORY_CONTRACT, 'Contract'),
        (CATEGORY_SETUP, 'Setup'),
    ]

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='checklist')
    code = models.CharField(max_length=50)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    label = models.CharField(max_length=255)
    description = models.CharField(max_length=255, blank=True)
    document_type = models.CharField(max_length=32, blank=True)
    is_required = models.BooleanField(default=True)
    is_completed = models.BooleanField(default=False)
    completed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='completed_checklist_items'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    order_index = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order_index', 'id']
        unique_together = [('application', 'code')]

    def __str__(self) -> str:
        return f"{self.application_id}:{self.code} ({'done' if self.is_completed else 'open'})"


class ContractTemplate(models.Model):
    """Reusable contract body written in Django template syntax."""
    TYPE_CHOICES = [
        ('PARTNERSHIP', 'Partnership'),
        ('SERVICE', 'Service'),
        ('LEASE', 'Lease'),
        ('MANAGEMENT', 'Management'),
    ]

    name = models.CharField(max_length=200)
    template_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='PARTNERSHIP')
    description = models.TextField(blank=True)
    content = models.TextField()
    is_active = models.BooleanField(default=True)
    version = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='contract_templates'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"


class Contract(models.Model):
    """Partnership agreement between the operator and an approved hospital."""
    STATUS_DRAFT = 'DRAFT'
    STATUS_SENT = 'SENT'
    STATUS_SIGNED = 'SIGNED'
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_TERMINATED = 'TERMINATED'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent'),
        (STATUS_SIGNED, 'Partially signed'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_TERMINATED, 'Terminated'),
    ]
    CURRENCY_CHOICES = [('NGN', 'Naira'), ('USD', 'US dollar')]

    PARTY_HOSPITAL = 'HOSPITAL'
    PARTY_OPERATOR = 'OPERATOR'

    contract_number = models.CharField(max_length=30, unique=True)
    application = models.OneToOneField(Application, on_delete=models.CASCADE, related_name='contract')
    hospital = models.ForeignKey(Hospital, on_delete=models.PROTECT, related_name='contracts')
    template = models.ForeignKey(
        ContractTemplate, null=True, blank=True, on_delete=models.SET_NULL, related_name='contracts'
    )
    title = models.CharField(max_length=200)
    contract_type = models.CharField(max_length=20, choices=ContractTemplate.TYPE_CHOICES, default='PARTNERSHIP')
    start_date = models.DateField()
    end_date = models.DateField()
    auto_renew = models.BooleanField(default=False)
    renewal_period_months = models.PositiveIntegerField(null=True, blank=True)
    setup_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    monthly_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    revenue_share_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default='NGN')
    payment_terms = models.TextField(blank=True)
    special_clauses = models.JSONField(default=list, blank=True)
    content = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    version = models.PositiveIntegerField(default=1)

    document_name = models.CharField(max_length=512, blank=True)
    document_url = models.CharField(max_length=512, blank=True)
    signed_document_name = models.CharField(max_length=512, blank=True)
    signed_document_url = models.CharField(max_length=512, blank=True)
    document_hash = models.CharField(max_length=32, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    hospital_signed_at = models.DateTimeField(null=True, blank=True)
    hospital_signed_by = models.CharField(max_length=100, blank=True)
    hospital_signer_email = models.EmailField(blank=True)
    hospital_signature = models.TextField(blank=True)
    operator_signed_at = models.DateTimeField(null=True, blank=True)
    operator_signed_by = models.CharField(max_length=100, blank=True)
    operator_signer_email = models.EmailField(blank=True)
    operator_signature = models.TextField(blank=True)

    activated_at = models.DateTimeField(null=True, blank=True)
    terminated_at = models.DateTimeField(null=True, blank=True)
    termination_reason = models.TextField(blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='created_contracts'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=~Q(status='ACTIVE')
                | (Q(hospital_signed_at__isnull=False) & Q(operator_signed_at__isnull=False)),
                name='active_contract_fully_signed',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.contract_number} ({self.status})"

    @property
    def fully_signed(self) -> bool:
        return bool(self.hospital_signed_at and self.operator_signed_at)


class SequenceCounter(models.Model):
    """Monotonic counter per key (e.g. ``APP-2026-10`` or ``HOSP-LG``)."""
    key = models.CharField(max_length=50, unique=True)
    value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='onb_audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='onb_audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}#{self.object_id}"
