"""School-wide settings and rate-limit bookkeeping."""
from qr_checkin import db
from qr_checkin.models.base import BaseModel
from qr_checkin.utils.helpers import utcnow

class SchoolSettings(BaseModel):
    """Singleton row holding the school geofence."""

    __tablename__ = 'school_settings'

    name = db.Column(db.String(255), nullable=True)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    radius_meters = db.Column(db.Float, nullable=False, default=500)
    allow_out_of_range = db.Column(db.Boolean, nullable=False, default=False)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

class RateLimitEntry(db.Model):
    """One admitted call, counted by the sliding-window limiter."""

    __tablename__ = 'rate_limits'
    __table_args__ = (
        db.Index('ix_rate_limits_key_time', 'identifier', 'endpoint', 'created_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    identifier = db.Column(db.String(255), nullable=False)
    endpoint = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f'<RateLimitEntry {self.identifier} {self.endpoint}>'
