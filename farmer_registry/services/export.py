# Farmer Export Service
"""
Bulk export of farmer aggregates to CSV, Excel or PDF.

1. Validates the export options
2. Loads the requested slice of farmers with every relation
3. Signs every document link for seven days
4. Flattens each aggregate into a row (CSV/Excel) or narrative sections (PDF)
5. Uploads the file under ``exports/`` with a timestamped name
6. Returns a 24-hour signed link to it and the number of exported farmers

Any failure after validation surfaces as a single ``ExportError``.
"""
import json
import logging
import secrets

from sqlalchemy.orm import joinedload, selectinload

from farmer_registry.errors import ExportError, StorageError
from farmer_registry.models import Farmer
from farmer_registry.services.farmers import DOCUMENT_SLOTS
from farmer_registry.utils.reports import (
    generate_csv_report, generate_excel_report, generate_pdf_report
)
from farmer_registry.utils.storage import (
    CONTENT_TYPES, EXPORTS, LAND_DOC, get_document_store, path_for, unique_timestamp
)
from farmer_registry.validation import validate_export_options

logger = logging.getLogger(__name__)

DOCUMENT_LINK_TTL = 7 * 24 * 60 * 60
DOWNLOAD_LINK_TTL = 24 * 60 * 60

EXTENSIONS = {'CSV': 'csv', 'EXCEL': 'xlsx', 'PDF': 'pdf'}

COLUMNS = [
    'SurveyNumber', 'Name', 'Relationship', 'Gender', 'Community',
    'AadharNumber', 'ContactNumber', 'State', 'District', 'Mandal',
    'Village', 'Panchayath', 'DateOfBirth', 'Age',
    'ProfilePicUrl', 'AadharDocUrl', 'BankDocUrl',
    'BankDetails', 'Fields',
    'CreatedBy', 'CreatedAt', 'UpdatedBy', 'UpdatedAt',
]

def select_farmers(options):
    query = Farmer.query.options(
        joinedload(Farmer.documents),
        joinedload(Farmer.bank_details),
        selectinload(Farmer.fields),
        joinedload(Farmer.created_by),
        joinedload(Farmer.updated_by),
    ).order_by(Farmer.created_at.desc(), Farmer.id.desc())

    if options.range == 'CURRENT_PAGE':
        query = query.offset((options.pageStart - 1) * options.limit).limit(options.limit)
    elif options.range == 'CUSTOM_RANGE':
        pages = options.pageEnd - options.pageStart + 1
        query = query.offset((options.pageStart - 1) * options.limit).limit(pages * options.limit)

    return query.all()

def _farmer_paths(farmer):
    paths = [path_for(category, getattr(farmer.documents, column)) for _, category, column in DOCUMENT_SLOTS]
    return paths + [path_for(LAND_DOC, field.land_document_url) for field in farmer.fields]

def _stamp(value):
    return value.strftime('%Y-%m-%d %H:%M:%S') if value else ''

def build_record(farmer, urls):
    """Nested export record; ``urls`` are the signed links in ``_farmer_paths`` order."""
    bank = farmer.bank_details
    field_urls = urls[len(DOCUMENT_SLOTS):]
    return {
        'SurveyNumber': farmer.survey_number,
        'Name': farmer.name,
        'Relationship': farmer.relationship,
        'Gender': farmer.gender,
        'Community': farmer.community,
        'AadharNumber': farmer.aadhar_number,
        'ContactNumber': farmer.contact_number,
        'State': farmer.state,
        'District': farmer.district,
        'Mandal': farmer.mandal,
        'Village': farmer.village,
        'Panchayath': farmer.panchayath,
        'DateOfBirth': farmer.date_of_birth.isoformat(),
        'Age': farmer.age,
        'ProfilePicUrl': urls[0],
        'AadharDocUrl': urls[1],
        'BankDocUrl': urls[2],
        'BankDetails': {
            'IFSC': bank.ifsc_code,
            'AccountNumber': bank.account_number,
            'BankName': bank.bank_name,
            'BranchName': bank.branch_name,
        } if bank else {},
        'Fields': [
            {
                'AreaHa': field.area_ha,
                'YieldEstimate': field.yield_estimate,
                'Location': json.dumps(field.location),
                'LandDocUrl': url,
            }
            for field, url in zip(farmer.fields, field_urls)
        ],
        'CreatedBy': farmer.created_by.name if farmer.created_by else '',
        'CreatedAt': _stamp(farmer.created_at),
        'UpdatedBy': farmer.updated_by.name if farmer.updated_by else '',
        'UpdatedAt': _stamp(farmer.updated_at),
    }

def flatten_record(record):
    row = dict(record)
    row['BankDetails'] = json.dumps(record['BankDetails'])
    row['Fields'] = json.dumps(record['Fields'])
    return row

def narrative(record):
    bank = record['BankDetails']
    field_lines = []
    for index, field in enumerate(record['Fields'], start=1):
        field_lines += [
            (f'Field {index} area (Ha)', field['AreaHa']),
            (f'Field {index} yield estimate', field['YieldEstimate']),
            (f'Field {index} location', field['Location']),
            (f'Field {index} land document', field['LandDocUrl']),
        ]
    return {
        'heading': f"Farmer Details - {record['Name']}",
        'sections': [
            ('Basic Information', [
                ('Survey Number', record['SurveyNumber']),
                ('Relationship', record['Relationship']),
                ('Gender', record['Gender']),
                ('Community', record['Community']),
                ('Aadhar Number', record['AadharNumber']),
                ('Contact', record['ContactNumber']),
                ('Age', record['Age']),
                ('Date of Birth', record['DateOfBirth']),
            ]),
            ('Location Details', [
                ('State', record['State']),
                ('District', record['District']),
                ('Mandal', record['Mandal']),
                ('Village', record['Village']),
                ('Panchayath', record['Panchayath']),
            ]),
            ('Bank Information', [
                ('Bank Name', bank.get('BankName')),
                ('Branch', bank.get('BranchName')),
                ('IFSC', bank.get('IFSC')),
                ('Account Number', bank.get('AccountNumber')),
            ]),
            ('Field Details', field_lines),
            ('Document Links', [
                ('Profile Picture', record['ProfilePicUrl']),
                ('Aadhar Document', record['AadharDocUrl']),
                ('Bank Document', record['BankDocUrl']),
            ]),
            ('Record Information', [
                ('Created By', record['CreatedBy']),
                ('Created At', record['CreatedAt']),
                ('Updated By', record['UpdatedBy']),
                ('Updated At', record['UpdatedAt']),
            ]),
        ],
    }

def render(fmt, records, generated_by):
    if fmt == 'PDF':
        return generate_pdf_report([narrative(r) for r in records], 'Farmers Data Export', generated_by).getvalue()
    rows = [flatten_record(r) for r in records]
    if fmt == 'EXCEL':
        return generate_excel_report(rows, columns=COLUMNS, sheet_name='Farmers')
    return generate_csv_report(rows, columns=COLUMNS).encode('utf-8')

def export_farmers(options, caller, generated_by='Admin'):
    """
    Export farmers and return ``{'downloadUrl': ..., 'exportedCount': ...}``.

    Raises:
        ValidationError: malformed options
        ExportError: any failure while reading, signing, encoding or storing
    """
    caller.require_admin('Only admins can export data')
    options = validate_export_options(options)
    extension = EXTENSIONS[options.format]
    # Unique across worker processes, not only within this one
    path = f'{EXPORTS}/farmers_{unique_timestamp()}_{secrets.token_hex(4)}.{extension}'

    try:
        store = get_document_store()
        farmers = select_farmers(options)

        per_farmer = [_farmer_paths(farmer) for farmer in farmers]
        signed = store.sign_many([p for paths in per_farmer for p in paths], DOCUMENT_LINK_TTL)

        records = []
        offset = 0
        for farmer, paths in zip(farmers, per_farmer):
            records.append(build_record(farmer, signed[offset:offset + len(paths)]))
            offset += len(paths)

        payload = render(options.format, records, generated_by)
        store.put_object(path, payload, CONTENT_TYPES[extension])
    except Exception as e:
        logger.exception('Export failed while building %s', path)
        raise ExportError() from e

    try:
        download_url = store.sign_url(path, DOWNLOAD_LINK_TTL)
    except StorageError as e:
        logger.error('Could not sign download link for %s: %s', path, e.detail or e.message)
        store.delete([path])
        raise ExportError() from e

    logger.info('Exported %d farmer(s) to %s', len(farmers), path)
    return {'downloadUrl': download_url, 'exportedCount': len(farmers)}
