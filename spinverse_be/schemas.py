from marshmallow import Schema, fields, ValidationError, pre_load, validates_schema, EXCLUDE
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow.validate import OneOf, Range, Length
import re
import html

from .models import db, User, Category
from .utils.security import validate_password_strength, sanitize_input
from .utils.promotion_helpers import get_available_days_display

# --- Validators ---
def validate_username(username):
    if not username:
        raise ValidationError('Username is required.')

    if len(username) < 3 or len(username) > 30:
        raise ValidationError('Username must be between 3 and 30 characters.')

    if not re.match(r'^[a-zA-Z0-9_]+$', username):
        raise ValidationError('Username can only contain letters, numbers, and underscores.')

    reserved = ['admin', 'root', 'administrator', 'moderator', 'support', 'system', 'null', 'undefined']
    if username.lower() in reserved:
        raise ValidationError('This username is reserved.')

    return username

def validate_password(password):
    errors = validate_password_strength(password)
    if errors:
        raise ValidationError(errors)

def sanitize_string_field(value):
    """Sanitize string inputs to prevent XSS"""
    if isinstance(value, str):
        value = html.escape(value)
        value = re.sub(r'<script\b[^<]*(?:(?!<\/script>)<[^<]*)*<\/script>', '', value, flags=re.IGNORECASE)
    return value

# --- Custom Fields ---
class SanitizedString(fields.String):
    """String field with automatic sanitization"""
    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        return sanitize_string_field(value) if value else value

class Money(fields.Decimal):
    """Two-place decimal on the way in, JSON number on the way out."""
    def __init__(self, **kwargs):
        super().__init__(places=2, **kwargs)

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return float(value)

# --- User Schemas ---
class UserSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = User
        load_instance = True
        sqla_session = db.session
        exclude = ("password",)

    id = auto_field(dump_only=True)
    username = auto_field()
    email = auto_field()
    is_admin = auto_field(dump_only=True)
    is_active = auto_field(dump_only=True)
    created_at = auto_field(dump_only=True)
    last_login_at = auto_field(dump_only=True)

class AdminUserSchema(Schema):
    """Record cached by the admin dashboard next to its token."""
    id = fields.Int()
    username = fields.Str()
    email = fields.Str()
    role = fields.Method("get_role")
    lastLogin = fields.DateTime(attribute="last_login_at", allow_none=True)

    def get_role(self, obj):
        return 'admin' if obj.is_admin else 'player'

class RegisterSchema(Schema):
    email = fields.Email(required=True, validate=Length(max=254))
    password = fields.Str(required=True, validate=validate_password)
    username = SanitizedString(validate=validate_username)

class LoginSchema(Schema):
    email = fields.Email(required=True, validate=Length(max=254))
    password = fields.Str(required=True, validate=Length(min=1, max=200))

    @pre_load
    def sanitize_input(self, data, **kwargs):
        # Password is left as typed
        if not isinstance(data, dict):
            return data
        cleaned = sanitize_input({k: v for k, v in data.items() if k != 'password'})
        if 'password' in data:
            cleaned['password'] = data['password']
        return cleaned

# --- Balance Schemas ---
class BalanceUpdateSchema(Schema):
    amount = Money(required=True, validate=Range(min=0, min_inclusive=False, error="Amount must be positive"))
    action = fields.Str(required=True, validate=OneOf(['bet', 'win', 'deposit'], error="Action must be one of: bet, win, deposit"))
    game_id = fields.Int(data_key='gameId', allow_none=True)

class WithdrawSchema(Schema):
    amount = Money(required=True, validate=Range(min=0, min_inclusive=False, error="Amount must be positive"))

class TransactionSchema(Schema):
    id = fields.Int()
    user_id = fields.Int(data_key='userId')
    type = fields.Str()
    amount = Money()
    game_id = fields.Int(data_key='gameId', allow_none=True)
    balance_before = Money(data_key='balanceBefore')
    balance_after = Money(data_key='balanceAfter')
    created_at = fields.DateTime(data_key='createdAt')

class TransactionQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=20, validate=Range(min=1, max=100, error="Invalid limit parameter"))

# --- Catalog Schemas ---
class CategorySchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Category
        load_instance = True
        sqla_session = db.session
        fields = ("id", "name", "slug", "description")

class GameSchema(Schema):
    id = fields.Int()
    title = fields.Str()
    slug = fields.Str()
    description = fields.Str(allow_none=True)
    provider = fields.Str()
    image = fields.Str()
    categoryId = fields.Int(attribute='category_id')
    category = fields.Str(allow_none=True)
    isFeatured = fields.Bool(attribute='is_featured')
    isPopular = fields.Bool(attribute='is_popular')
    isNew = fields.Bool(attribute='is_new')
    isJackpot = fields.Bool(attribute='is_jackpot')
    jackpotAmount = Money(attribute='jackpot_amount', allow_none=True)
    rtp = Money(allow_none=True)
    volatility = fields.Str(allow_none=True)
    minBet = Money(attribute='min_bet')
    maxBet = Money(attribute='max_bet')
    playCount = fields.Int(attribute='play_count')

class SearchQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    q = fields.Str(required=True, validate=Length(min=2, max=100, error="Search query must be at least 2 characters"))

# --- Promotion Schemas ---
class PromotionSchema(Schema):
    id = fields.Int()
    title = fields.Str()
    description = fields.Str(allow_none=True)
    active = fields.Bool()
    timezone = fields.Str()
    daysOfWeek = fields.List(fields.Int(), attribute='days_of_week')
    maxUsagePerDay = fields.Int(attribute='max_usage_per_day', allow_none=True)
    availableDays = fields.Method("get_available_days")

    def get_available_days(self, obj):
        return get_available_days_display(obj.days_of_week)

class PromotionCreateSchema(Schema):
    title = SanitizedString(required=True, validate=Length(min=2, max=200))
    description = SanitizedString(validate=Length(max=2000))
    active = fields.Bool(load_default=True)
    timezone = fields.Str(load_default='Australia/Sydney', validate=Length(min=1, max=64))
    days_of_week = fields.List(fields.Int(validate=Range(min=0, max=6)), data_key='daysOfWeek', required=True)
    max_usage_per_day = fields.Int(data_key='maxUsagePerDay', allow_none=True, validate=Range(min=1))

    @validates_schema
    def validate_unique_days(self, data, **kwargs):
        days = data.get('days_of_week') or []
        if len(set(days)) != len(days):
            raise ValidationError('Days of week must not repeat.', 'daysOfWeek')

# --- Admin Schemas ---
class AdminLoginSchema(Schema):
    username = fields.Str(required=True, validate=Length(min=1, max=254))
    password = fields.Str(required=True, validate=Length(min=1, max=200))

class AdminBalanceAdjustSchema(Schema):
    amount = Money(required=True, validate=Range(min=0, min_inclusive=False, error="Amount must be positive"))
    type = fields.Str(required=True, validate=OneOf(['add', 'subtract'], error="Type must be one of: add, subtract"))
    reason = SanitizedString(load_default='Manual adjustment', validate=Length(max=500))

class PaginationSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    page = fields.Int(load_default=1, validate=Range(min=1))
    per_page = fields.Int(load_default=20, validate=Range(min=1, max=100))

class PlayerSchema(Schema):
    id = fields.Int()
    username = fields.Str()
    email = fields.Str()
    isActive = fields.Bool(attribute='is_active')
    createdAt = fields.DateTime(attribute='created_at')
    lastLogin = fields.DateTime(attribute='last_login_at', allow_none=True)
    balance = fields.Method("get_balance")

    def get_balance(self, obj):
        record = obj.balance_record
        return float(record.balance) if record else None
