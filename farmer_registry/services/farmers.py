# Farmer Record Service
"""
Lifecycle of the farmer aggregate: Farmer plus its FarmerDocuments,
BankDetails and Field rows, and the files they point at in storage.

Consistency rules:

* Nothing is uploaded until the payload and every file have been
  validated, and nothing is written to the database until every upload
  has succeeded. A failed create leaves neither rows nor objects behind.
* Objects replaced by an update, or left over after a delete, are removed
  best-effort once the database change is committed; a failed removal is
  logged and does not fail the request.
"""
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from farmer_registry.errors import (
    DuplicateError, FileError, NotFoundError, SurveyNumberError, ValidationError
)
from farmer_registry.models import BankDetails, Farmer, FarmerDocuments, Field, db
from farmer_registry.utils.storage import (
    AADHAR_DOC, BANK_DOC, LAND_DOC, PROFILE_PIC, build_filename, get_document_store, path_for
)
from farmer_registry.utils.survey import generate_survey_number
from farmer_registry.validation import check_upload, validate_create, validate_update

logger = logging.getLogger(__name__)

SIGNED_URL_TTL = 60 * 60
DOCUMENT_URL_TTL = 30 * 60

# form file key, storage category, FarmerDocuments column
DOCUMENT_SLOTS = (
    ('profilePic', PROFILE_PIC, 'profile_pic_url'),
    ('aadharDoc', AADHAR_DOC, 'aadhar_doc_url'),
    ('bankDoc', BANK_DOC, 'bank_doc_url'),
)

# Types accepted by the single-document URL endpoint
DOCUMENT_TYPES = {
    'profile-pic': (PROFILE_PIC, 'profile_pic_url'),
    'aadhar': (AADHAR_DOC, 'aadhar_doc_url'),
    'bank': (BANK_DOC, 'bank_doc_url'),
    'land': (LAND_DOC, None),
}

PERSONAL_FIELDS = {
    'farmerName': 'name',
    'relationship': 'relationship',
    'gender': 'gender',
    'community': 'community',
    'aadharNumber': 'aadhar_number',
    'contactNumber': 'contact_number',
    'state': 'state',
    'district': 'district',
    'mandal': 'mandal',
    'village': 'village',
    'panchayath': 'panchayath',
    'dateOfBirth': 'date_of_birth',
    'age': 'age',
}

BANK_FIELDS = {
    'ifscCode': 'ifsc_code',
    'accountNumber': 'account_number',
    'branchName': 'branch_name',
    'bankAddress': 'address',
    'bankName': 'bank_name',
    'bankCode': 'bank_code',
}

def field_doc_key(index):
    return f'fieldDoc_{index}'

def _land_label(index):
    return f'{LAND_DOC} (field {index + 1})'

def _survey_number_taken(survey_number):
    return db.session.query(Farmer.id).filter_by(survey_number=survey_number).first() is not None

# ==================== LOOKUP ====================

def find_farmer(identifier):
    """Resolve a numeric id or a survey number to a farmer with all relations loaded."""
    identifier = str(identifier).strip()
    conditions = [Farmer.survey_number == identifier]
    if identifier.isdigit():
        conditions.append(Farmer.id == int(identifier))

    farmer = Farmer.query.options(
        joinedload(Farmer.documents),
        joinedload(Farmer.bank_details),
        selectinload(Farmer.fields),
        joinedload(Farmer.created_by),
        joinedload(Farmer.updated_by),
    ).filter(db.or_(*conditions)).first()

    if not farmer:
        raise NotFoundError('Farmer not found')
    return farmer

def document_paths(farmer):
    """Storage paths of every object the aggregate references."""
    paths = []
    if farmer.documents:
        for _, category, column in DOCUMENT_SLOTS:
            filename = getattr(farmer.documents, column)
            if filename:
                paths.append(path_for(category, filename))
    for field in farmer.fields:
        if field.land_document_url:
            paths.append(path_for(LAND_DOC, field.land_document_url))
    return paths

# ==================== SERIALIZATION ====================

def _user_name(user):
    return {'name': user.name} if user else None

def farmer_summary(farmer):
    return {
        'id': farmer.id,
        'surveyNumber': farmer.survey_number,
        'name': farmer.name,
        'aadharNumber': farmer.aadhar_number,
        'contactNumber': farmer.contact_number,
        'state': farmer.state,
        'district': farmer.district,
        'village': farmer.village,
        'createdAt': farmer.created_at.isoformat(),
        'createdBy': _user_name(farmer.created_by),
        'documents': farmer.documents.to_dict() if farmer.documents else None,
        'fields': [
            {
                'areaHa': field.area_ha,
                'yieldEstimate': field.yield_estimate,
                'landDocumentUrl': field.land_document_url,
            }
            for field in farmer.fields
        ],
    }

def farmer_to_dict(farmer):
    return {
        'id': farmer.id,
        'surveyNumber': farmer.survey_number,
        'name': farmer.name,
        'relationship': farmer.relationship,
        'gender': farmer.gender,
        'community': farmer.community,
        'aadharNumber': farmer.aadhar_number,
        'contactNumber': farmer.contact_number,
        'state': farmer.state,
        'district': farmer.district,
        'mandal': farmer.mandal,
        'village': farmer.village,
        'panchayath': farmer.panchayath,
        'dateOfBirth': farmer.date_of_birth.isoformat(),
        'age': farmer.age,
        'documents': farmer.documents.to_dict() if farmer.documents else None,
        'bankDetails': farmer.bank_details.to_dict() if farmer.bank_details else None,
        'fields': [field.to_dict() for field in farmer.fields],
        'createdBy': _user_name(farmer.created_by),
        'updatedBy': _user_name(farmer.updated_by),
        'createdAt': farmer.created_at.isoformat(),
        'updatedAt': farmer.updated_at.isoformat() if farmer.updated_at else None,
    }

# ==================== CREATE ====================

def create_farmer(payload, files, caller):
    """
    Validate, upload every document, then persist the aggregate in one
    transaction. Returns the new Farmer.

    Raises ValidationError, FileError and StorageError before any database
    write happens.
    """
    data = validate_create(payload)

    max_size = current_app.config['MAX_UPLOAD_SIZE']
    documents = [
        (category, column, check_upload(files.get(key), category, max_size))
        for key, category, column in DOCUMENT_SLOTS
    ]
    land_documents = [
        check_upload(files.get(field_doc_key(index)), _land_label(index), max_size)
        for index in range(len(data.fields))
    ]

    store = get_document_store()
    max_attempts = current_app.config['SURVEY_NUMBER_MAX_ATTEMPTS']

    for attempt in range(1, max_attempts + 1):
        survey_number = generate_survey_number(_survey_number_taken, max_attempts)

        uploads = [
            (category, build_filename(survey_number, doc.extension), doc.data, doc.content_type)
            for category, _, doc in documents
        ] + [
            (LAND_DOC, build_filename(survey_number, doc.extension), doc.data, doc.content_type)
            for doc in land_documents
        ]
        filenames = store.upload_many(uploads)
        uploaded_paths = [path_for(category, name) for (category, *_), name in zip(uploads, filenames)]

        doc_names = dict(zip([column for _, column, _ in documents], filenames[:len(documents)]))
        land_names = filenames[len(documents):]

        farmer = Farmer(
            survey_number=survey_number,
            name=data.farmerName,
            relationship=data.relationship,
            gender=data.gender,
            community=data.community,
            aadhar_number=data.aadharNumber,
            contact_number=data.contactNumber,
            state=data.state,
            district=data.district,
            mandal=data.mandal,
            village=data.village,
            panchayath=data.panchayath,
            date_of_birth=data.dateOfBirth,
            age=data.age,
            created_by_id=caller.user_id,
            updated_by_id=caller.user_id,
            documents=FarmerDocuments(**doc_names),
            bank_details=BankDetails(
                ifsc_code=data.bankDetails.ifscCode,
                account_number=data.bankDetails.accountNumber,
                branch_name=data.bankDetails.branchName,
                address=data.bankDetails.bankAddress,
                bank_name=data.bankDetails.bankName,
                bank_code=data.bankDetails.bankCode,
            ),
            fields=[
                Field(
                    area_ha=field.areaHa,
                    yield_estimate=field.yieldEstimate,
                    location=field.location.model_dump(),
                    land_document_url=land_name,
                )
                for field, land_name in zip(data.fields, land_names)
            ],
        )

        try:
            db.session.add(farmer)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            store.delete(uploaded_paths)
            if _survey_number_taken(survey_number):
                logger.warning('Survey number %s claimed concurrently (attempt %d/%d), retrying',
                               survey_number, attempt, max_attempts)
                continue
            raise DuplicateError('Duplicate farmer record', detail=str(e.orig)) from e
        except Exception:
            db.session.rollback()
            store.delete(uploaded_paths)
            raise

        logger.info('Created farmer %s (id=%s) by user %s', farmer.survey_number, farmer.id, caller.user_id)
        return farmer

    raise SurveyNumberError(detail=f'Survey number collided on commit {max_attempts} times')

# ==================== LIST / GET ====================

def list_farmers(search=None, state=None, district=None, page=1, limit=10):
    """One page of farmer summaries, newest first, with the total match count."""
    query = Farmer.query.options(
        joinedload(Farmer.documents),
        selectinload(Farmer.fields),
        joinedload(Farmer.created_by),
    )

    if search:
        query = query.filter(db.or_(
            Farmer.name.icontains(search, autoescape=True),
            Farmer.survey_number.icontains(search, autoescape=True),
            Farmer.aadhar_number.contains(search, autoescape=True),
            Farmer.contact_number.contains(search, autoescape=True),
        ))
    if state:
        query = query.filter(Farmer.state == state)
    if district:
        query = query.filter(Farmer.district == district)

    pagination = query.order_by(Farmer.created_at.desc(), Farmer.id.desc()).paginate(
        page=page, per_page=limit, error_out=False, count=True
    )

    return {
        'farmers': [farmer_summary(farmer) for farmer in pagination.items],
        'pagination': {
            'total': pagination.total,
            'pages': pagination.pages,
            'currentPage': page,
            'limit': limit,
        },
    }

def get_farmer(identifier):
    """Full aggregate with one-hour signed URLs for every document."""
    farmer = find_farmer(identifier)
    body = farmer_to_dict(farmer)

    store = get_document_store()
    docs = farmer.documents
    paths = [path_for(category, getattr(docs, column)) for _, category, column in DOCUMENT_SLOTS]
    paths += [path_for(LAND_DOC, field.land_document_url) for field in farmer.fields]
    urls = store.sign_many(paths, SIGNED_URL_TTL)

    body['documents'].update({
        'profilePicSignedUrl': urls[0],
        'aadharDocSignedUrl': urls[1],
        'bankDocSignedUrl': urls[2],
    })
    for field_body, url in zip(body['fields'], urls[len(DOCUMENT_SLOTS):]):
        field_body['landDocumentSignedUrl'] = url
    return body

def document_url(doc_type, identifier, field_index=0):
    """Thirty-minute signed URL for a single farmer document."""
    if doc_type not in DOCUMENT_TYPES:
        raise ValidationError('Invalid document type',
                              details=[{'field': 'type', 'message': f'Unknown document type: {doc_type}'}])

    farmer = find_farmer(identifier)
    category, column = DOCUMENT_TYPES[doc_type]

    if column is None:
        if field_index < 0 or field_index >= len(farmer.fields):
            raise NotFoundError('Document not found', detail=f'Farmer has no field #{field_index}')
        filename = farmer.fields[field_index].land_document_url
    else:
        filename = getattr(farmer.documents, column) if farmer.documents else None

    if not filename:
        raise NotFoundError('Document not found')

    return get_document_store().sign_url(path_for(category, filename), DOCUMENT_URL_TTL)

# ==================== UPDATE ====================

def update_farmer(identifier, payload, files, caller):
    """
    Apply a partial update. Only supplied values change; a supplied
    ``fields`` list replaces the whole field set. Replacement files are
    uploaded first, and the objects they supersede are deleted after the
    commit.
    """
    caller.require_admin('Only admins can edit farmer records')

    farmer = find_farmer(identifier)
    data = validate_update(payload)
    max_size = current_app.config['MAX_UPLOAD_SIZE']

    replacements = []
    for key, category, column in DOCUMENT_SLOTS:
        doc = check_upload(files.get(key), category, max_size, required=False)
        if doc:
            replacements.append((category, column, doc))

    field_plan = None
    if data.fields is not None:
        current_land = {field.land_document_url for field in farmer.fields}
        field_plan = []
        for index, field in enumerate(data.fields):
            doc = check_upload(files.get(field_doc_key(index)), _land_label(index), max_size, required=False)
            if doc is None:
                if not field.landDocumentUrl:
                    raise FileError(detail=f'{_land_label(index)} document is required')
                if field.landDocumentUrl not in current_land:
                    raise ValidationError(details=[{
                        'field': f'fields.{index}.landDocumentUrl',
                        'message': 'Land document does not belong to this farmer',
                    }])
            field_plan.append((field, doc))

    store = get_document_store()
    uploads = []
    new_doc_names = {}
    for category, column, doc in replacements:
        filename = build_filename(farmer.survey_number, doc.extension)
        new_doc_names[column] = (category, filename)
        uploads.append((category, filename, doc.data, doc.content_type))

    new_fields = None
    if field_plan is not None:
        new_fields = []
        for field, doc in field_plan:
            if doc:
                filename = build_filename(farmer.survey_number, doc.extension)
                uploads.append((LAND_DOC, filename, doc.data, doc.content_type))
            else:
                filename = field.landDocumentUrl
            new_fields.append(Field(
                area_ha=field.areaHa,
                yield_estimate=field.yieldEstimate,
                location=field.location.model_dump(),
                land_document_url=filename,
            ))

    store.upload_many(uploads)
    uploaded_paths = [path_for(category, filename) for category, filename, _, _ in uploads]

    superseded = []
    try:
        for key, column in PERSONAL_FIELDS.items():
            value = getattr(data, key)
            if value is not None:
                setattr(farmer, column, value)

        if data.bankDetails is not None:
            for key, column in BANK_FIELDS.items():
                value = getattr(data.bankDetails, key)
                if value is not None:
                    setattr(farmer.bank_details, column, value)

        for column, (category, filename) in new_doc_names.items():
            old = getattr(farmer.documents, column)
            if old:
                superseded.append(path_for(category, old))
            setattr(farmer.documents, column, filename)

        if new_fields is not None:
            kept = {field.land_document_url for field in new_fields}
            superseded += [
                path_for(LAND_DOC, field.land_document_url)
                for field in farmer.fields
                if field.land_document_url not in kept
            ]
            farmer.fields.clear()
            db.session.flush()
            farmer.fields.extend(new_fields)

        farmer.updated_by_id = caller.user_id
        db.session.commit()
    except Exception:
        db.session.rollback()
        store.delete(uploaded_paths)
        raise

    if superseded and not store.delete(superseded):
        logger.warning('Farmer %s: %d superseded object(s) could not be deleted',
                       farmer.survey_number, len(superseded))

    logger.info('Updated farmer %s by user %s', farmer.survey_number, caller.user_id)
    return farmer

# ==================== DELETE ====================

def delete_farmer(identifier, caller):
    """Remove the aggregate, then its objects; storage cleanup is best-effort."""
    caller.require_admin('Only admins can delete farmer records')

    farmer = find_farmer(identifier)
    paths = document_paths(farmer)
    survey_number = farmer.survey_number
    store = get_document_store()

    try:
        db.session.delete(farmer)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if paths and not store.delete(paths):
        logger.warning('Farmer %s: %d document object(s) could not be deleted', survey_number, len(paths))
    logger.info('Deleted farmer %s by user %s', survey_number, caller.user_id)
