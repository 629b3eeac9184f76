from flask import jsonify
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash, check_password_hash

from . import bp
from ..errors import AuthError, ValidationError
from ..extensions import db
from ..model import User
from ..utils.api import api_ok
from ..utils.net import json_body
from ..utils.decorators import current_user


@bp.post("/register")
def register():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()

    if not email:
        raise ValidationError("Email required", field="email")
    if not password or len(password) < 6:
        raise ValidationError("Password required, min 6 chars", field="password")
    if not name:
        raise ValidationError("Name required", field="name")
    if User.query.filter_by(email=email).first():
        raise ValidationError("Email already registered", field="email")

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0
    user = User(
        email=email,
        name=name,
        phone=(data.get("phone") or "").strip() or None,
        password_hash=generate_password_hash(password),
        role="admin" if is_first_user else "user",
    )
    db.session.add(user)
    db.session.commit()

    token = create_access_token(identity=str(user.id))
    return jsonify(api_ok("Account created successfully", data={"user": user.as_dict(), "access_token": token})), 201


@bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        raise AuthError("Invalid email or password")

    token = create_access_token(identity=str(user.id))
    return jsonify(api_ok("Login successful", data={"user": user.as_dict(), "access_token": token}))


@bp.get("/me")
def me():
    return jsonify(api_ok("OK", data={"user": current_user().as_dict()}))
