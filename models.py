from datetime import datetime, timedelta, timezone

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the way every column stores it"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class Client(UserMixin, db.Model):
    __tablename__ = 'clients'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120))
    match_credits = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    briefs = db.relationship('Brief', backref='client', lazy=True)

    role = 'client'

    def get_id(self):
        return f'client:{self.id}'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'match_credits': self.match_credits or 0,
            'created_at': _iso(self.created_at),
        }


class Designer(UserMixin, db.Model):
    __tablename__ = 'designers'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(80))
    last_name = db.Column(db.String(80))
    last_initial = db.Column(db.String(1))
    title = db.Column(db.String(120))
    bio = db.Column(db.Text)
    city = db.Column(db.String(80))
    country = db.Column(db.String(80))
    timezone = db.Column(db.String(64))
    phone = db.Column(db.String(40))
    website = db.Column(db.String(255))
    portfolio_url = db.Column(db.String(255))
    avatar_url = db.Column(db.String(255))
    portfolio_images = db.Column(db.JSON, default=list)

    years_experience = db.Column(db.Integer, default=0)
    rating = db.Column(db.Float, default=0.0)
    total_projects = db.Column(db.Integer, default=0)
    styles = db.Column(db.JSON, default=list)
    industries = db.Column(db.JSON, default=list)
    project_types = db.Column(db.JSON, default=list)
    tools = db.Column(db.JSON, default=list)
    availability = db.Column(db.String(20), default='available')

    is_verified = db.Column(db.Boolean, default=False)
    is_approved = db.Column(db.Boolean, default=False)
    status = db.Column(db.String(20), default='draft')
    rejection_reason = db.Column(db.Text)
    rejection_count = db.Column(db.Integer, default=0)
    rejection_seen = db.Column(db.Boolean, default=True)
    approved_at = db.Column(db.DateTime)
    last_rejection_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    role = 'designer'

    def get_id(self):
        return f'designer:{self.id}'

    @property
    def display_name(self):
        initial = self.last_initial or (self.last_name or '')[:1]
        name = self.first_name or 'Designer'
        return f'{name} {initial}.' if initial else name

    @property
    def full_name(self):
        return ' '.join(p for p in [self.first_name, self.last_name] if p) or 'Designer'

    def to_dict(self, include_contact=False):
        data = {
            'id': self.id,
            'firstName': self.first_name,
            'lastInitial': self.last_initial or (self.last_name or '')[:1] or None,
            'title': self.title,
            'bio': self.bio,
            'city': self.city,
            'country': self.country,
            'timezone': self.timezone,
            'avatarUrl': self.avatar_url,
            'portfolioImages': self.portfolio_images or [],
            'yearsExperience': self.years_experience or 0,
            'rating': self.rating or 0.0,
            'totalProjects': self.total_projects or 0,
            'styles': self.styles or [],
            'industries': self.industries or [],
            'projectTypes': self.project_types or [],
            'tools': self.tools or [],
            'availability': self.availability,
        }
        if include_contact:
            data.update({
                'lastName': self.last_name,
                'email': self.email,
                'phone': self.phone,
                'website': self.website,
                'portfolioUrl': self.portfolio_url,
            })
        return data

    def to_admin_dict(self):
        data = self.to_dict(include_contact=True)
        data.update({
            'isVerified': self.is_verified,
            'isApproved': self.is_approved,
            'status': self.status,
            'rejectionReason': self.rejection_reason,
            'rejectionCount': self.rejection_count or 0,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        })
        return data


class Brief(db.Model):
    __tablename__ = 'briefs'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    project_type = db.Column(db.String(80), nullable=False)
    industry = db.Column(db.String(80), nullable=False)
    timeline = db.Column(db.String(80), nullable=False)
    budget = db.Column(db.String(80))
    styles = db.Column(db.JSON, default=list)
    inspiration = db.Column(db.Text)
    requirements = db.Column(db.Text)
    timezone = db.Column(db.String(64))
    communication = db.Column(db.JSON, default=lambda: ['email'])
    status = db.Column(db.String(20), default='active')
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'project_type': self.project_type,
            'industry': self.industry,
            'timeline': self.timeline,
            'budget': self.budget,
            'styles': self.styles or [],
            'inspiration': self.inspiration,
            'requirements': self.requirements,
            'timezone': self.timezone,
            'communication': self.communication or ['email'],
            'status': self.status,
            'created_at': _iso(self.created_at),
        }


class Match(db.Model):
    __tablename__ = 'matches'
    __table_args__ = (db.UniqueConstraint('brief_id', 'designer_id', name='uq_match_brief_designer'),)

    id = db.Column(db.Integer, primary_key=True)
    brief_id = db.Column(db.Integer, db.ForeignKey('briefs.id'), nullable=False, index=True)
    designer_id = db.Column(db.Integer, db.ForeignKey('designers.id'), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    reasons = db.Column(db.JSON, default=list)
    ai_summary = db.Column(db.Text)
    status = db.Column(db.String(20), default='pending', nullable=False)
    expires_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    brief = db.relationship('Brief', lazy='joined')
    designer = db.relationship('Designer', lazy='joined')
    client = db.relationship('Client')

    @property
    def is_unlocked(self):
        return self.status in ('unlocked', 'accepted')

    def set_expiry(self, days):
        self.expires_at = utcnow() + timedelta(days=days)

    def to_dict(self):
        return {
            'id': self.id,
            'brief_id': self.brief_id,
            'client_id': self.client_id,
            'score': self.score,
            'reasons': self.reasons or [],
            'ai_summary': self.ai_summary,
            'status': self.status,
            'expires_at': _iso(self.expires_at),
            'created_at': _iso(self.created_at),
            'designer': self.designer.to_dict(include_contact=self.is_unlocked) if self.designer else None,
        }


class MatchUnlock(db.Model):
    __tablename__ = 'match_unlocks'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('matches.id'), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False)
    payment_id = db.Column(db.String(64))
    amount = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)


class ProjectRequest(db.Model):
    __tablename__ = 'project_requests'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('matches.id'), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False)
    designer_id = db.Column(db.Integer, db.ForeignKey('designers.id'), nullable=False, index=True)
    message = db.Column(db.Text)
    # pending, approved, rejected or expired
    status = db.Column(db.String(20), default='pending', nullable=False)
    client_email = db.Column(db.String(255))
    brief_snapshot = db.Column(db.JSON)
    rejection_reason = db.Column(db.Text)
    viewed_at = db.Column(db.DateTime)
    responded_at = db.Column(db.DateTime)
    first_reminder_sent_at = db.Column(db.DateTime)
    final_reminder_sent_at = db.Column(db.DateTime)
    expired_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    match = db.relationship('Match')
    client = db.relationship('Client')
    designer = db.relationship('Designer')

    def to_dict(self):
        return {
            'id': self.id,
            'match_id': self.match_id,
            'client_id': self.client_id,
            'designer_id': self.designer_id,
            'message': self.message,
            'status': self.status,
            # the client's email is shared only once the designer approves
            'client_email': self.client_email if self.status == 'approved' else None,
            'brief': self.brief_snapshot,
            'rejection_reason': self.rejection_reason,
            'viewed_at': _iso(self.viewed_at),
            'responded_at': _iso(self.responded_at),
            'expired_at': _iso(self.expired_at),
            'created_at': _iso(self.created_at),
        }


class AuthToken(db.Model):
    __tablename__ = 'auth_tokens'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    token_hash = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), default='otp', nullable=False)
    user_type = db.Column(db.String(20), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False)
    order_id = db.Column(db.String(64), unique=True, nullable=False)
    amount = db.Column(db.Integer, default=0)
    currency = db.Column(db.String(8))
    status = db.Column(db.String(20), default='completed')
    product_name = db.Column(db.String(120))
    credits_purchased = db.Column(db.Integer, default=0)
    raw = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=utcnow)


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('matches.id'), nullable=False, index=True)
    sender_type = db.Column(db.String(20), nullable=False)
    sender_id = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'match_id': self.match_id,
            'sender_type': self.sender_type,
            'sender_id': self.sender_id,
            'content': self.content,
            'read_at': _iso(self.read_at),
            'created_at': _iso(self.created_at),
        }
