# User Administration Service
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from farmer_registry.errors import (
    AuthError, DuplicateError, ForbiddenError, NotFoundError, ValidationError
)
from farmer_registry.models import Farmer, ROLE_ADMIN, ROLE_STAFF, User, db

logger = logging.getLogger(__name__)

DELETE_POLICIES = ('block', 'nullify', 'reassign')

def authenticate(email, password):
    if not email or not password:
        raise ValidationError('Email and password are required')

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.check_password(password):
        raise AuthError('Invalid credentials')
    if not user.is_active:
        raise ForbiddenError('Account is disabled')
    return user

def create_user(email, password, name, role=ROLE_STAFF):
    if not email or not password or not name:
        raise ValidationError('Email, password, and name are required')

    user = User(email=email.strip().lower(), name=name.strip(), role=role, is_active=True)
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateError('Email already exists')

    logger.info('Created %s user %s', role, user.email)
    return user

def list_staff():
    return User.query.filter_by(role=ROLE_STAFF).order_by(User.created_at.asc(), User.id.asc()).all()

def _active_admin_count():
    return User.query.filter_by(role=ROLE_ADMIN, is_active=True).count()

def _is_last_active_admin(user):
    return user.role == ROLE_ADMIN and user.is_active and _active_admin_count() == 1

def toggle_status(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')

    if _is_last_active_admin(user):
        raise ValidationError('Cannot deactivate the last admin user')

    user.is_active = not user.is_active
    db.session.commit()
    logger.info('User %s %s', user.email, 'activated' if user.is_active else 'deactivated')
    return user

def _owned_farmers(user):
    return Farmer.query.filter(
        db.or_(Farmer.created_by_id == user.id, Farmer.updated_by_id == user.id)
    )

def _system_user():
    email = current_app.config.get('SYSTEM_USER_EMAIL')
    system_user = User.query.filter_by(email=email).first() if email else None
    if system_user is None:
        raise ValidationError('SYSTEM_USER_EMAIL does not name an existing user')
    return system_user

def delete_user(user_id, caller):
    """
    Hard-delete a user, applying ``USER_DELETE_POLICY`` to farmer records
    that reference them: ``block`` refuses, ``nullify`` clears the
    reference, ``reassign`` hands it to the configured system user.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    if user.id == caller.user_id:
        raise ValidationError('You cannot delete your own account')
    if _is_last_active_admin(user):
        raise ValidationError('Cannot delete the last admin user')

    policy = current_app.config.get('USER_DELETE_POLICY', 'block')
    if policy not in DELETE_POLICIES:
        raise ValueError(f'Unknown USER_DELETE_POLICY: {policy}')

    owned = _owned_farmers(user).count()
    if owned:
        if policy == 'block':
            raise ValidationError(
                'Cannot delete user',
                detail=f'User is referenced by {owned} farmer record(s)',
            )
        replacement = None
        if policy == 'reassign':
            replacement = _system_user()
            if replacement.id == user.id:
                raise ValidationError('Cannot delete the system user')
        new_id = replacement.id if replacement else None
        Farmer.query.filter_by(created_by_id=user.id).update(
            {'created_by_id': new_id}, synchronize_session=False)
        Farmer.query.filter_by(updated_by_id=user.id).update(
            {'updated_by_id': new_id}, synchronize_session=False)
        logger.info('Applied %s policy to %d farmer record(s) of user %s', policy, owned, user.email)

    db.session.delete(user)
    db.session.commit()
    logger.info('Deleted user %s', user.email)

def seed_admin_if_needed(app):
    """Create the configured initial admin when no admin exists yet."""
    email = app.config.get('ADMIN_EMAIL')
    password = app.config.get('ADMIN_PASSWORD')
    if not email or not password:
        return None

    if User.query.filter_by(role=ROLE_ADMIN).first():
        logger.info('Admin user already exists, skipping seeding')
        return None

    user = create_user(email, password, app.config.get('ADMIN_NAME', 'Administrator'), role=ROLE_ADMIN)
    logger.info('Seeded initial admin %s', user.email)
    return user
