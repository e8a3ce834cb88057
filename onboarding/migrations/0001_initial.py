import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

FACILITY_TYPES = [
    ('General Hospital', 'General Hospital'),
    ('Specialist Hospital', 'Specialist Hospital'),
    ('Teaching Hospital', 'Teaching Hospital'),
    ('Primary Healthcare Center', 'Primary Healthcare Center'),
    ('Clinic', 'Clinic'),
    ('Diagnostic Center', 'Diagnostic Center'),
    ('Maternity Home', 'Maternity Home'),
]

CONTRACT_TYPES = [
    ('PARTNERSHIP', 'Partnership'),
    ('SERVICE', 'Service'),
    ('LEASE', 'Lease'),
    ('MANAGEMENT', 'Management'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('SUPER_ADMIN', 'Super Administrator'), ('ADMIN', 'Administrator'), ('HOSPITAL_ADMIN', 'Hospital Administrator'), ('DOCTOR', 'Doctor'), ('NURSE', 'Nurse'), ('RECEPTIONIST', 'Receptionist'), ('PATIENT', 'Patient')], db_index=True, default='PATIENT', max_length=20)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Application',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('application_number', models.CharField(max_length=30, unique=True)),
                ('hospital_name', models.CharField(max_length=100)),
                ('legal_name', models.CharField(max_length=100)),
                ('registration_number', models.CharField(max_length=100)),
                ('tax_id', models.CharField(blank=True, max_length=100)),
                ('facility_type', models.CharField(choices=FACILITY_TYPES, max_length=50)),
                ('website', models.URLField(blank=True)),
                ('contact_name', models.CharField(max_length=100)),
                ('contact_email', models.EmailField(db_index=True, max_length=254)),
                ('contact_phone', models.CharField(max_length=20)),
                ('alternate_phone', models.CharField(blank=True, max_length=20)),
                ('address', models.CharField(max_length=200)),
                ('city', models.CharField(max_length=50)),
                ('state', models.CharField(db_index=True, max_length=50)),
                ('lga', models.CharField(max_length=50)),
                ('postal_code', models.CharField(blank=True, max_length=20)),
                ('bed_capacity', models.PositiveIntegerField(default=0)),
                ('staff_count', models.PositiveIntegerField(default=0)),
                ('services_offered', models.JSONField(default=list)),
                ('specializations', models.JSONField(blank=True, default=list)),
                ('has_emergency', models.BooleanField(default=False)),
                ('has_pharmacy', models.BooleanField(default=False)),
                ('has_laboratory', models.BooleanField(default=False)),
                ('has_radiology', models.BooleanField(default=False)),
                ('is_urban', models.BooleanField(default=True)),
                ('has_parking', models.BooleanField(default=False)),
                ('has_public_transport', models.BooleanField(default=False)),
                ('estimated_revenue', models.DecimalField(blank=True, decimal_places=2, max_digits=16, null=True)),
                ('has_insurance_partnerships', models.BooleanField(default=False)),
                ('has_hmo_partnerships', models.BooleanField(default=False)),
                ('has_government_contracts', models.BooleanField(default=False)),
                ('years_in_operation', models.PositiveIntegerField(default=0)),
                ('business_plan', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('SUBMITTED', 'Submitted'), ('UNDER_REVIEW', 'Under review'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('WITHDRAWN', 'Withdrawn')], db_index=True, default='SUBMITTED', max_length=20)),
                ('evaluation_score', models.FloatField(blank=True, null=True)),
                ('decision', models.CharField(blank=True, max_length=20)),
                ('rejection_reason', models.TextField(blank=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('withdrawn_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('decided_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='decided_applications', to=settings.AUTH_USER_MODEL)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_applications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='onb_app_status_created_idx')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('status__in', ['REJECTED', 'WITHDRAWN']), _negated=True), fields=('contact_email',), name='uniq_active_application_per_email')],
            },
        ),
        migrations.CreateModel(
            name='Hospital',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=20, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('legal_name', models.CharField(blank=True, max_length=255)),
                ('registration_number', models.CharField(blank=True, max_length=100)),
                ('tax_id', models.CharField(blank=True, max_length=100)),
                ('facility_type', models.CharField(blank=True, choices=FACILITY_TYPES, max_length=50)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('website', models.URLField(blank=True)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(db_index=True, max_length=50)),
                ('lga', models.CharField(blank=True, max_length=100)),
                ('bed_capacity', models.PositiveIntegerField(default=0)),
                ('staff_count', models.PositiveIntegerField(default=0)),
                ('services_offered', models.JSONField(blank=True, default=list)),
                ('specializations', models.JSONField(blank=True, default=list)),
                ('has_emergency', models.BooleanField(default=False)),
                ('has_pharmacy', models.BooleanField(default=False)),
                ('has_laboratory', models.BooleanField(default=False)),
                ('has_radiology', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACTIVE', 'Active'), ('SUSPENDED', 'Suspended'), ('INACTIVE', 'Inactive')], db_index=True, default='PENDING', max_length=20)),
                ('is_verified', models.BooleanField(default=False)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('activated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('application', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='hospital', to='onboarding.application')),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='owned_hospitals', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.AddField(
            model_name='user',
            name='primary_hospital',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='affiliated_users', to='onboarding.hospital'),
        ),
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(choices=[('LICENSE', 'Medical license'), ('REGISTRATION', 'CAC registration'), ('TAX_CERTIFICATE', 'Tax clearance certificate'), ('INSURANCE', 'Insurance'), ('FACILITY_PHOTOS', 'Facility photos'), ('OWNERSHIP_PROOF', 'Proof of ownership'), ('STAFF_CREDENTIALS', 'Staff credentials'), ('CAC_CERTIFICATE', 'CAC certificate'), ('MEDICAL_LICENSE', 'Medical license (additional)'), ('INSURANCE_CERTIFICATE', 'Insurance certificate'), ('BUILDING_PERMIT', 'Building permit'), ('FIRE_SAFETY_CERTIFICATE', 'Fire safety certificate'), ('ENVIRONMENTAL_PERMIT', 'Environmental permit'), ('OTHER', 'Other')], db_index=True, max_length=32)),
                ('name', models.CharField(max_length=255)),
                ('original_file_name', models.CharField(max_length=255)),
                ('storage_name', models.CharField(max_length=512)),
                ('file_url', models.CharField(max_length=512)),
                ('mime_type', models.CharField(max_length=128)),
                ('size', models.PositiveIntegerField(default=0)),
                ('checksum', models.CharField(max_length=64)),
                ('is_verified', models.BooleanField(default=False)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('verification_notes', models.TextField(blank=True)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='onboarding.application')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_documents', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='EvaluationScore',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('facility_score', models.FloatField()),
                ('staffing_score', models.FloatField()),
                ('equipment_score', models.FloatField()),
                ('compliance_score', models.FloatField()),
                ('financial_score', models.FloatField()),
                ('location_score', models.FloatField()),
                ('services_score', models.FloatField()),
                ('reputation_score', models.FloatField()),
                ('notes', models.JSONField(blank=True, default=dict)),
                ('total_score', models.FloatField()),
                ('recommendation', models.CharField(choices=[('APPROVE', 'Approve'), ('REVIEW', 'Review'), ('PENDING_REVIEW', 'Pending review'), ('REJECT', 'Reject')], max_length=20)),
                ('is_auto_generated', models.BooleanField(default=False)),
                ('general_notes', models.TextField(blank=True)),
                ('risk_assessment', models.TextField(blank=True)),
                ('evaluated_at', models.DateTimeField(auto_now_add=True)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='evaluations', to='onboarding.application')),
                ('evaluator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='evaluations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-evaluated_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ChecklistItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50)),
                ('category', models.CharField(choices=[('DOCUMENTS', 'Documents'), ('VERIFICATION', 'Verification'), ('CONTRACT', 'Contract'), ('SETUP', 'Setup')], max_length=20)),
                ('label', models.CharField(max_length=255)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('document_type', models.CharField(blank=True, max_length=32)),
                ('is_required', models.BooleanField(default=True)),
                ('is_completed', models.BooleanField(default=False)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('order_index', models.PositiveIntegerField(default=0)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='checklist', to='onboarding.application')),
                ('completed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='completed_checklist_items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['order_index', 'id'],
                'unique_together': {('application', 'code')},
            },
        ),
        migrations.CreateModel(
            name='ContractTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('template_type', models.CharField(choices=CONTRACT_TYPES, default='PARTNERSHIP', max_length=20)),
                ('description', models.TextField(blank=True)),
                ('content', models.TextField()),
                ('is_active', models.BooleanField(default=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contract_templates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Contract',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('contract_number', models.CharField(max_length=30, unique=True)),
                ('title', models.CharField(max_length=200)),
                ('contract_type', models.CharField(choices=CONTRACT_TYPES, default='PARTNERSHIP', max_length=20)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('auto_renew', models.BooleanField(default=False)),
                ('renewal_period_months', models.PositiveIntegerField(blank=True, null=True)),
                ('setup_fee', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('monthly_fee', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('revenue_share_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('currency', models.CharField(choices=[('NGN', 'Naira'), ('USD', 'US dollar')], default='NGN', max_length=3)),
                ('payment_terms', models.TextField(blank=True)),
                ('special_clauses', models.JSONField(blank=True, default=list)),
                ('content', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('SENT', 'Sent'), ('SIGNED', 'Partially signed'), ('ACTIVE', 'Active'), ('TERMINATED', 'Terminated')], db_index=True, default='DRAFT', max_length=20)),
                ('version', models.PositiveIntegerField(default=1)),
                ('document_name', models.CharField(blank=True, max_length=512)),
                ('document_url', models.CharField(blank=True, max_length=512)),
                ('signed_document_name', models.CharField(blank=True, max_length=512)),
                ('signed_document_url', models.CharField(blank=True, max_length=512)),
                ('document_hash', models.CharField(blank=True, max_length=32)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('hospital_signed_at', models.DateTimeField(blank=True, null=True)),
                ('hospital_signed_by', models.CharField(blank=True, max_length=100)),
                ('hospital_signer_email', models.EmailField(blank=True, max_length=254)),
                ('hospital_signature', models.TextField(blank=True)),
                ('operator_signed_at', models.DateTimeField(blank=True, null=True)),
                ('operator_signed_by', models.CharField(blank=True, max_length=100)),
                ('operator_signer_email', models.EmailField(blank=True, max_length=254)),
                ('operator_signature', models.TextField(blank=True)),
                ('activated_at', models.DateTimeField(blank=True, null=True)),
                ('terminated_at', models.DateTimeField(blank=True, null=True)),
                ('termination_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('application', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='contract', to='onboarding.application')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_contracts', to=settings.AUTH_USER_MODEL)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='contracts', to='onboarding.hospital')),
                ('template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='contracts', to='onboarding.contracttemplate')),
            ],
            options={
                'ordering': ['-created_at'],
                'constraints': [models.CheckConstraint(condition=models.Q(models.Q(('status', 'ACTIVE'), _negated=True), models.Q(('hospital_signed_at__isnull', False), ('operator_signed_at__isnull', False)), _connector='OR'), name='active_contract_fully_signed')],
            },
        ),
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=50, unique=True)),
                ('value', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='onb_audit_action_created_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='onb_audit_object_idx'),
                ],
            },
        ),
    ]
