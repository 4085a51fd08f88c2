# Session / Auth Gate
"""
Request gate that classifies every path as public, authenticated or
admin-only and checks the signed session cookie against it.

The session cookie is Flask's signed session; ``start_session`` stores the
Flask-Login user id together with the caller's role and an absolute
expiry. For allowed requests the gate attaches a ``SessionContext`` to
``g.caller``. Views and services read identity from that object only.
Identity headers sent by the client are never consulted.
"""
import logging
import time
from dataclasses import asdict, dataclass

from flask import g, jsonify, redirect, request, session, url_for
from flask_login import LoginManager, current_user, login_user, logout_user

from farmer_registry.errors import ForbiddenError
from farmer_registry.models import ROLE_ADMIN, User, db

logger = logging.getLogger(__name__)

PUBLIC = 'PUBLIC'
AUTHENTICATED = 'AUTHENTICATED'
ADMIN_ONLY = 'ADMIN_ONLY'

# (path prefix, methods or None for all, classification); first match wins
ROUTE_TABLE = [
    ('/api/users', None, ADMIN_ONLY),
    ('/api/documents', None, ADMIN_ONLY),
    ('/api/export/farmers', None, ADMIN_ONLY),
    ('/api/farmers', {'PUT', 'DELETE'}, ADMIN_ONLY),
    ('/api/farmers', None, AUTHENTICATED),
    ('/admindashboard', None, ADMIN_ONLY),
    ('/dashboard', None, AUTHENTICATED),
]

login_manager = LoginManager()
login_manager.session_protection = None

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

@dataclass(frozen=True)
class SessionContext:
    """
    Verified identity of the caller for one request.

    ``hydrated`` is True once the context was rebuilt from a valid signed
    cookie. Clients polling ``/api/auth/session`` should not trust cached
    identity until they have seen a hydrated context.
    """
    user_id: int = None
    role: str = None
    expires_at: int = None
    hydrated: bool = False

    @property
    def is_authenticated(self):
        return self.user_id is not None

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def require_admin(self, message='Admin access required'):
        if not self.is_admin:
            raise ForbiddenError(message)

    def to_dict(self):
        body = asdict(self)
        body['authenticated'] = self.is_authenticated
        return body

ANONYMOUS = SessionContext(hydrated=True)

def classify(path, method):
    for prefix, methods, classification in ROUTE_TABLE:
        if path == prefix or path.startswith(prefix + '/'):
            if methods is None or method in methods:
                return classification
    return PUBLIC

def start_session(user, lifetime):
    """Log the user in and stamp role and absolute expiry into the cookie."""
    session.permanent = True
    login_user(user)
    session['role'] = user.role
    session['exp'] = int(time.time() + lifetime.total_seconds())

def end_session():
    logout_user()
    session.clear()

def read_session():
    """Build the caller context from the signed cookie, or None if absent/expired."""
    user_id = session.get('_user_id')
    role = session.get('role')
    exp = session.get('exp')
    if user_id is None or role is None or exp is None:
        return None
    if exp < time.time():
        logger.info('Session for user %s expired', user_id)
        session.clear()
        return None
    return SessionContext(user_id=int(user_id), role=role, expires_at=exp, hydrated=True)

def _is_api(path):
    return path.startswith('/api/')

def gate():
    classification = classify(request.path, request.method)
    context = read_session()
    g.caller = context or ANONYMOUS

    if classification == PUBLIC:
        return None

    if context is None:
        if _is_api(request.path):
            return jsonify({'error': 'Unauthorized'}), 401
        return redirect(url_for('main.signin'))

    if classification == ADMIN_ONLY and not context.is_admin:
        if _is_api(request.path):
            return jsonify({'error': 'Admin access required'}), 403
        return redirect(url_for('main.dashboard'))

    return None

def current_caller():
    return g.get('caller', ANONYMOUS)

def init_auth(app):
    login_manager.init_app(app)
    app.before_request(gate)

def require_active_account():
    """Reject callers whose account was disabled after they signed in."""
    if not current_user.is_authenticated or not current_user.is_active:
        raise ForbiddenError('Account is disabled')
