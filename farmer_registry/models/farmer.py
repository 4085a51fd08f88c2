# Farmer Aggregate Models
from farmer_registry.models.user import db
from datetime import datetime

RELATIONSHIPS = ('SELF', 'SPOUSE', 'CHILD', 'OTHER')
GENDERS = ('MALE', 'FEMALE', 'OTHER')

class Farmer(db.Model):
    __tablename__ = 'farmers'

    id = db.Column(db.Integer, primary_key=True)
    survey_number = db.Column(db.String(11), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    relationship = db.Column(db.String(10), nullable=False)  # SELF, SPOUSE, CHILD, OTHER
    gender = db.Column(db.String(10), nullable=False)  # MALE, FEMALE, OTHER
    community = db.Column(db.String(50), nullable=False)
    aadhar_number = db.Column(db.String(12), nullable=False, index=True)
    contact_number = db.Column(db.String(10), nullable=False)
    state = db.Column(db.String(100), nullable=False, index=True)
    district = db.Column(db.String(100), nullable=False, index=True)
    mandal = db.Column(db.String(100), nullable=False)
    village = db.Column(db.String(100), nullable=False)
    panchayath = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=False)
    age = db.Column(db.Integer, nullable=False)
    # Nullable so the "nullify" user deletion policy can clear them
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    updated_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    documents = db.relationship('FarmerDocuments', uselist=False, back_populates='farmer',
                                cascade='all, delete-orphan')
    bank_details = db.relationship('BankDetails', uselist=False, back_populates='farmer',
                                   cascade='all, delete-orphan')
    fields = db.relationship('Field', back_populates='farmer', order_by='Field.id',
                             cascade='all, delete-orphan')
    created_by = db.relationship('User', foreign_keys=[created_by_id])
    updated_by = db.relationship('User', foreign_keys=[updated_by_id])

    def __repr__(self):
        return f'<Farmer {self.survey_number} - {self.name}>'

class FarmerDocuments(db.Model):
    __tablename__ = 'farmer_documents'

    id = db.Column(db.Integer, primary_key=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey('farmers.id', ondelete='CASCADE'),
                          unique=True, nullable=False)
    # Bare filenames, resolved against the category folder in storage
    profile_pic_url = db.Column(db.String(255), nullable=False)
    aadhar_doc_url = db.Column(db.String(255), nullable=False)
    bank_doc_url = db.Column(db.String(255), nullable=False)

    farmer = db.relationship('Farmer', back_populates='documents')

    def to_dict(self):
        return {
            'profilePicUrl': self.profile_pic_url,
            'aadharDocUrl': self.aadhar_doc_url,
            'bankDocUrl': self.bank_doc_url,
        }

class BankDetails(db.Model):
    __tablename__ = 'bank_details'

    id = db.Column(db.Integer, primary_key=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey('farmers.id', ondelete='CASCADE'),
                          unique=True, nullable=False)
    account_number = db.Column(db.String(30), nullable=False)
    ifsc_code = db.Column(db.String(11), nullable=False)
    branch_name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.Text, nullable=False)
    bank_name = db.Column(db.String(200), nullable=False)
    bank_code = db.Column(db.String(50), nullable=False)

    farmer = db.relationship('Farmer', back_populates='bank_details')

    def to_dict(self):
        return {
            'accountNumber': self.account_number,
            'ifscCode': self.ifsc_code,
            'branchName': self.branch_name,
            'address': self.address,
            'bankName': self.bank_name,
            'bankCode': self.bank_code,
        }

class Field(db.Model):
    __tablename__ = 'fields'

    id = db.Column(db.Integer, primary_key=True)
    farmer_id = db.Column(db.Integer, db.ForeignKey('farmers.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    area_ha = db.Column(db.Float, nullable=False)
    yield_estimate = db.Column(db.Float, nullable=False)
    location = db.Column(db.JSON, nullable=False)  # lat, lng, accuracy, altitude, altitudeAccuracy, timestamp
    land_document_url = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    farmer = db.relationship('Farmer', back_populates='fields')

    def to_dict(self):
        return {
            'id': self.id,
            'areaHa': self.area_ha,
            'yieldEstimate': self.yield_estimate,
            'location': self.location,
            'landDocumentUrl': self.land_document_url,
        }
