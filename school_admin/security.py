from functools import wraps

from flask import session
from werkzeug.security import check_password_hash, generate_password_hash

from school_admin.errors import Forbidden, NotAuthenticated

ADMIN = 'admin'
TEACHER = 'teacher'
STUDENT = 'student'
ROLES = (ADMIN, TEACHER, STUDENT)

STAFF = (ADMIN, TEACHER)

# --- Role-based CRUD policy ---
CRUD_PERMISSIONS = {
    'dashboard': {
        'read': ROLES,
    },
    'student': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': STAFF,
        'delete': (ADMIN,),
    },
    'teacher': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': (ADMIN,),
        'delete': (ADMIN,),
    },
    'class': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': (ADMIN,),
        'delete': (ADMIN,),
    },
    'subject': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': (ADMIN,),
        'delete': (ADMIN,),
    },
    'attendance': {
        'create': STAFF,
        'read':   ROLES,
        'update': STAFF,
        'delete': STAFF,
    },
    'grade': {
        'create': STAFF,
        'read':   ROLES,
        'update': STAFF,
        'delete': STAFF,
    },
    'fee': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': (ADMIN,),
        'delete': (ADMIN,),
    },
    'announcement': {
        'create': STAFF,
        'read':   ROLES,
        'update': STAFF,
        'delete': STAFF,
    },
    'timetable': {
        'create': (ADMIN,),
        'read':   ROLES,
        'update': (ADMIN,),
        'delete': (ADMIN,),
    },
}


def hash_password(plaintext):
    return generate_password_hash(plaintext)


def verify_password(plaintext, password_hash):
    if not isinstance(plaintext, str) or not plaintext or not password_hash:
        return False
    return check_password_hash(password_hash, plaintext)


def current_user():
    """Return the session principal or raise ``NotAuthenticated``."""
    user = session.get('user')
    if not user:
        raise NotAuthenticated()
    return user


def is_allowed(role, resource, action):
    return role in CRUD_PERMISSIONS.get(resource, {}).get(action, ())


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        current_user()
        return fn(*args, **kwargs)
    return wrapper


def crud_required(resource: str, action: str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if not is_allowed(user.get('role'), resource, action):
                allowed = CRUD_PERMISSIONS.get(resource, {}).get(action, ())
                raise Forbidden('Admin access required' if tuple(allowed) == (ADMIN,) else 'Forbidden')
            return fn(*args, **kwargs)
        return wrapper
    return decorator
