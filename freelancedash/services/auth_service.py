from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token

from freelancedash.extensions import bcrypt
from freelancedash.models.user import User
from freelancedash.utils.exceptions import AuthFailed, Conflict, NotFound
from freelancedash.utils.transactions import atomic


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")


def check_password(password, hashed_password):
    return bcrypt.check_password_hash(hashed_password, password)


def register_user(session, email, password, full_name=None, role="client", phone=None, address=None):
    email = email.strip().lower()
    if session.query(User).filter_by(email=email).first():
        raise Conflict("User with that email already exists", details={"field": "email"})

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        phone=phone,
        address=address,
    )
    with atomic(session):
        session.add(user)
    return user


def authenticate_user(session, email, password):
    user = session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if not user or not check_password(password, user.password_hash):
        raise AuthFailed()
    return user


def get_user(session, user_id):
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found", details={"userId": user_id})
    return user


def generate_access_token(user):
    return create_access_token(
        identity=user.id,
        additional_claims={"role": user.role},
        expires_delta=timedelta(seconds=current_app.config.get("ACCESS_EXPIRES", 86400)),
    )
