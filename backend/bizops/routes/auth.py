import logging
from flask import Blueprint, request, abort, g
from flask_jwt_extended import create_access_token
from sqlalchemy import select, or_
from bizops import get_db
from bizops.models.authz import User
from bizops.decorators.auth import require_login
from bizops.services.policy import current_profile, resolve_permissions
from bizops.utils.validation import validate_payload

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

REGISTER_RULES = {
    'full_name': {'type': str, 'min': 1, 'max': 128},
    'username': {'type': str, 'min': 3, 'max': 64},
    'email': {'type': str, 'email': True, 'max': 128},
    'password': {'type': str, 'min': 6, 'max': 128},
}


@auth_bp.post('/register')
def register():
    data = validate_payload(request.get_json(silent=True) or {}, REGISTER_RULES, required=REGISTER_RULES.keys())
    session = get_db()
    existing = session.execute(
        select(User).where(or_(User.email == data['email'], User.username == data['username']))
    ).scalars().first()
    if existing:
        abort(400, description='Email or username already in use')
    user = User(full_name=data['full_name'], username=data['username'], email=data['email'], password_hash='', is_active=True)
    user.set_password(data['password'])
    session.add(user)
    session.commit()
    logger.info('Registered user id=%s', user.id)
    return {'message': 'User registered successfully', 'id': user.id}, 201


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='invalid credentials')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=user.email, additional_claims={
        'user_id': user.id,
        'is_ceo': bool(user.is_ceo),
    })
    return {'access_token': token}


@auth_bp.get('/me')
@require_login
def me():
    profile = current_profile(g.identity.email)
    if profile is None:
        abort(404, description='User not found')
    return profile


@auth_bp.get('/permissions')
@require_login
def fresh_permissions():
    return {
        'permissions': sorted(resolve_permissions(g.identity.email)),
        'is_ceo': g.identity.is_superuser,
    }
