from flask_jwt_extended import decode_token
from spinverse_be.models import db, User, TokenBlacklist
from datetime import datetime, timezone

def user_identity_lookup(user):
    if isinstance(user, User):
        return str(user.id)
    return str(user)

def user_lookup_callback(_jwt_header, jwt_data):
    identity = jwt_data["sub"]
    user_obj = db.session.get(User, int(identity))
    if user_obj is None or not user_obj.is_active:
        return None
    return user_obj

def check_if_token_in_blacklist(jwt_header, jwt_payload):
    jti = jwt_payload['jti']
    token = db.session.query(TokenBlacklist.id).filter_by(jti=jti).scalar()
    return token is not None

def revoke_token(jwt_payload):
    """Blacklist a token until its own expiry."""
    exp = jwt_payload.get('exp')
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp else datetime.now(timezone.utc)
    db.session.add(TokenBlacklist(jti=jwt_payload['jti'], expires_at=expires_at))
    db.session.commit()

def user_id_from_token(token):
    """Resolve a raw access token (socket handshake) to a user id, or None."""
    try:
        payload = decode_token(token)
    except Exception:
        return None
    if check_if_token_in_blacklist(None, payload):
        return None
    try:
        return int(payload['sub'])
    except (KeyError, TypeError, ValueError):
        return None

def register_jwt_handlers(jwt):
    jwt.user_identity_loader(user_identity_lookup)
    jwt.user_lookup_loader(user_lookup_callback)
    jwt.token_in_blocklist_loader(check_if_token_in_blacklist)
