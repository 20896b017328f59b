from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from passlib.hash import pbkdf2_sha256 as sha256
from decimal import Decimal
from sqlalchemy import JSON, Numeric

db = SQLAlchemy()

MONEY = Numeric(12, 2)

class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    balance_record = db.relationship('UserBalance', back_populates='user', uselist=False, lazy=True)
    transactions = db.relationship('Transaction', backref='user', lazy='dynamic')

    def check_password(self, password):
        return sha256.verify(password, self.password)

    @staticmethod
    def hash_password(password):
        return sha256.hash(password)

    @staticmethod
    def verify_password(hashed_password, password):
        return sha256.verify(password, hashed_password)

    def __repr__(self):
        return f"<User {self.username}>"

class UserBalance(db.Model):
    __tablename__ = 'user_balance'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False, index=True)
    balance = db.Column(MONEY, default=Decimal('1000'), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    user = db.relationship('User', back_populates='balance_record')

    def __repr__(self):
        return f"<UserBalance user={self.user_id} balance={self.balance}>"

class Transaction(db.Model):
    __tablename__ = 'transaction'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, index=True)  # bet, win, deposit, bonus, withdraw
    amount = db.Column(MONEY, nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=True, index=True)
    balance_before = db.Column(MONEY, nullable=False)
    balance_after = db.Column(MONEY, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)

    game = db.relationship('Game', backref=db.backref('transactions', lazy='dynamic'))

    def __repr__(self):
        return f"<Transaction {self.id} (User: {self.user_id}, Type: {self.type}, Amount: {self.amount})>"

class Category(db.Model):
    __tablename__ = 'category'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    games = db.relationship('Game', back_populates='category_ref', lazy='dynamic')

    def __repr__(self):
        return f"<Category {self.slug}>"

class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    provider = db.Column(db.String(100), nullable=False)
    image = db.Column(db.String(500), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('category.id'), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=True)  # slug string used for filtering
    is_featured = db.Column(db.Boolean, default=False, nullable=False)
    is_popular = db.Column(db.Boolean, default=False, nullable=False)
    is_new = db.Column(db.Boolean, default=False, nullable=False)
    is_jackpot = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    jackpot_amount = db.Column(MONEY, nullable=True)
    rtp = db.Column(Numeric(5, 2), nullable=True)
    volatility = db.Column(db.String(20), nullable=True)
    min_bet = db.Column(Numeric(10, 2), default=Decimal('0.5'), nullable=False)
    max_bet = db.Column(Numeric(10, 2), default=Decimal('100'), nullable=False)
    play_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    category_ref = db.relationship('Category', back_populates='games')

    def __repr__(self):
        return f"<Game {self.slug}>"

class Promotion(db.Model):
    __tablename__ = 'promotion'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    timezone = db.Column(db.String(64), default='Australia/Sydney', nullable=False)
    days_of_week = db.Column(JSON, default=list, nullable=False)  # 0=Sunday ... 6=Saturday
    max_usage_per_day = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<Promotion {self.id} {self.title}>"

class TokenBlacklist(db.Model):
    __tablename__ = 'token_blacklist'
    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(36), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<TokenBlacklist {self.jti}>"
