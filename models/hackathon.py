# models/hackathon.py
# Хакатон принадлежит внешнему жизненному циклу, здесь он только читается

from extensions import db
from sqlalchemy import CheckConstraint


class Hackathon(db.Model):
    __tablename__ = 'hackathons'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String, nullable=False)
    status = db.Column(db.String(30), nullable=False, default='draft')
    organizer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    organizer = db.relationship('User')
    projects = db.relationship('Project', backref='hackathon', lazy=True, cascade="all, delete-orphan")
    criteria = db.relationship('ScoringCriterion', backref='hackathon', lazy=True, cascade="all, delete-orphan")
    judge_assignments = db.relationship('JudgeAssignment', backref='hackathon', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_review', 'approved', 'active', 'completed', 'cancelled')",
            name="check_hackathon_status"
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'status': self.status,
            'endDate': self.end_date.isoformat() if self.end_date else None,
        }
