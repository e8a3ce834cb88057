from django.core.files.uploadedfile import SimpleUploadedFile

# Scores 79.05 once the three required documents are verified, 63.05 without them.
STRONG_PROFILE = dict(
    hospital_name='Maiduguri Specialist Hospital',
    legal_name='Maiduguri Specialist Hospital Ltd',
    registration_number='RC-104233',
    facility_type='Specialist Hospital',
    contact_name='Aisha Bello',
    contact_phone='08031234567',
    address='12 Damboa Road',
    city='Maiduguri',
    state='Borno',
    lga='Maiduguri',
    bed_capacity=80,
    staff_count=60,
    services_offered=[
        'Emergency Care', 'Outpatient Services', 'Inpatient Services',
        'Laboratory Services', 'Pharmacy Services', 'Surgery',
    ],
    specializations=['Surgery', 'Pediatrics'],
    has_emergency=True,
    has_pharmacy=True,
    has_laboratory=True,
    has_radiology=True,
    is_urban=False,
    has_parking=True,
    has_insurance_partnerships=True,
    has_hmo_partnerships=True,
    years_in_operation=5,
)

# Scores 14.2.
WEAK_PROFILE = dict(
    hospital_name='Ikeja Family Clinic',
    legal_name='Ikeja Family Clinic',
    registration_number='RC-998877',
    facility_type='Clinic',
    contact_name='Tunde Okafor',
    contact_phone='+2348051234567',
    address='4 Allen Avenue',
    city='Ikeja',
    state='Lagos',
    lga='Ikeja',
    bed_capacity=8,
    staff_count=0,
    services_offered=['Outpatient Services'],
    is_urban=True,
)

REQUIRED_TYPES = ('LICENSE', 'REGISTRATION', 'TAX_CERTIFICATE')


def pdf_upload(name='document.pdf', body=b'%PDF-1.4 test document'):
    return SimpleUploadedFile(name, body, content_type='application/pdf')
