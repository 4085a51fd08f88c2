# Farmer Payload Validation
"""
Schemas for farmer create/update payloads and checks for uploaded files.

Schema failures are reported as ``ValidationError`` with one entry per
offending field path (``bankDetails.ifscCode``, ``fields.0.location.lat``);
file problems as ``FileError``. Both are raised before anything is written
to storage or the database.
"""
import json
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from farmer_registry.errors import FileError, ValidationError

AADHAR_RE = re.compile(r'^\d{12}$')
CONTACT_RE = re.compile(r'^\d{10}$')
IFSC_RE = re.compile(r'^[A-Z]{4}0[A-Z0-9]{6}$')

ALLOWED_MIMETYPES = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'application/pdf': 'pdf',
}

Relationship = Literal['SELF', 'SPOUSE', 'CHILD', 'OTHER']
Gender = Literal['MALE', 'FEMALE', 'OTHER']

def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value

def _check(value, pattern, message):
    if value is not None and not pattern.match(value):
        raise ValueError(message)
    return value

class _PersonalChecks(BaseModel):
    @field_validator('relationship', 'gender', mode='before', check_fields=False)
    @classmethod
    def normalise_choice(cls, value):
        return _upper(value)

    @field_validator('aadharNumber', check_fields=False)
    @classmethod
    def check_aadhar(cls, value):
        return _check(value, AADHAR_RE, 'Aadhar number must be 12 digits')

    @field_validator('contactNumber', check_fields=False)
    @classmethod
    def check_contact(cls, value):
        return _check(value, CONTACT_RE, 'Contact number must be 10 digits')

class _BankChecks(BaseModel):
    @field_validator('ifscCode', check_fields=False)
    @classmethod
    def check_ifsc(cls, value):
        return _check(value, IFSC_RE, 'Invalid IFSC code format')

class LocationSchema(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    accuracy: float = Field(ge=0)
    altitude: Optional[float] = None
    altitudeAccuracy: Optional[float] = None
    timestamp: float

class FieldSchema(BaseModel):
    areaHa: float = Field(ge=0)
    yieldEstimate: float = Field(ge=0)
    location: LocationSchema
    # Only meaningful on update: keeps an existing land document
    landDocumentUrl: Optional[str] = None

    @field_validator('location', mode='before')
    @classmethod
    def parse_location(cls, value):
        # The form sends each location as a JSON string
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                raise ValueError('Location must be valid JSON')
        return value

class BankDetailsSchema(_BankChecks):
    ifscCode: str
    accountNumber: str = Field(min_length=8)
    branchName: str
    bankAddress: str
    bankName: str
    bankCode: str

class BankDetailsUpdateSchema(_BankChecks):
    ifscCode: Optional[str] = None
    accountNumber: Optional[str] = Field(default=None, min_length=8)
    branchName: Optional[str] = None
    bankAddress: Optional[str] = None
    bankName: Optional[str] = None
    bankCode: Optional[str] = None

class CreateFarmerSchema(_PersonalChecks):
    farmerName: str = Field(min_length=1)
    relationship: Relationship
    gender: Gender
    community: str
    aadharNumber: str
    contactNumber: str
    state: str
    district: str
    mandal: str
    village: str
    panchayath: str
    dateOfBirth: date
    age: int = Field(ge=0)
    bankDetails: BankDetailsSchema
    fields: List[FieldSchema] = Field(min_length=1)

class UpdateFarmerSchema(_PersonalChecks):
    farmerName: Optional[str] = Field(default=None, min_length=1)
    relationship: Optional[Relationship] = None
    gender: Optional[Gender] = None
    community: Optional[str] = None
    aadharNumber: Optional[str] = None
    contactNumber: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    mandal: Optional[str] = None
    village: Optional[str] = None
    panchayath: Optional[str] = None
    dateOfBirth: Optional[date] = None
    age: Optional[int] = Field(default=None, ge=0)
    bankDetails: Optional[BankDetailsUpdateSchema] = None
    fields: Optional[List[FieldSchema]] = Field(default=None, min_length=1)

class ExportOptionsSchema(BaseModel):
    format: Literal['CSV', 'EXCEL', 'PDF']
    range: Literal['ALL', 'CURRENT_PAGE', 'CUSTOM_RANGE'] = 'ALL'
    pageStart: Optional[int] = Field(default=None, ge=1)
    pageEnd: Optional[int] = Field(default=None, ge=1)
    limit: int = Field(default=10, ge=1, le=1000)

    @field_validator('format', 'range', mode='before')
    @classmethod
    def normalise_choice(cls, value):
        return _upper(value)

    @model_validator(mode='after')
    def check_pages(self):
        if self.range in ('CURRENT_PAGE', 'CUSTOM_RANGE') and self.pageStart is None:
            raise ValueError(f'pageStart is required for range {self.range}')
        if self.range == 'CUSTOM_RANGE':
            if self.pageEnd is None:
                raise ValueError('pageEnd is required for range CUSTOM_RANGE')
            if self.pageEnd < self.pageStart:
                raise ValueError('pageEnd must not be before pageStart')
        return self

def _details(exc):
    return [
        {
            'field': '.'.join(str(part) for part in err['loc']),
            'message': err['msg'].removeprefix('Value error, '),
        }
        for err in exc.errors()
    ]

def validate_create(data):
    try:
        return CreateFarmerSchema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(details=_details(e))

def validate_update(data):
    try:
        return UpdateFarmerSchema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(details=_details(e))

def parse_fields_json(raw):
    """Decode the ``fields`` form value; None when it was not sent."""
    if raw is None or raw == '':
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError('Invalid fields data format',
                              details=[{'field': 'fields', 'message': 'Must be a JSON array'}])
    if not isinstance(value, list):
        raise ValidationError('Invalid fields data format',
                              details=[{'field': 'fields', 'message': 'Must be a JSON array'}])
    return value

@dataclass
class UploadedDocument:
    data: bytes
    extension: str
    content_type: str

def check_upload(file, label, max_size, required=True):
    """
    Read and vet one uploaded file.

    Returns an ``UploadedDocument``, or None for an absent optional file.
    """
    if file is None or not file.filename:
        if required:
            raise FileError(detail=f'{label} document is required')
        return None

    content_type = (file.mimetype or '').lower()
    if content_type not in ALLOWED_MIMETYPES:
        raise FileError(detail=f'{label}: invalid file type, must be JPG, PNG, or PDF')

    data = file.read()
    if not data:
        raise FileError(detail=f'{label} document is empty')
    if len(data) > max_size:
        raise FileError(detail=f'{label}: file size must be less than {max_size // (1024 * 1024)}MB')

    extension = ALLOWED_MIMETYPES[content_type]
    if '.' in file.filename:
        declared = file.filename.rsplit('.', 1)[1].lower()
        if declared in ('jpg', 'jpeg', 'png', 'pdf'):
            extension = declared

    return UploadedDocument(data=data, extension=extension, content_type=content_type)

def validate_export_options(options):
    try:
        return ExportOptionsSchema.model_validate(options or {})
    except PydanticValidationError as e:
        raise ValidationError('Invalid export options', details=_details(e))
