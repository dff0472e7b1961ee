# models/project.py

from extensions import db
from sqlalchemy import CheckConstraint

PROJECT_REVIEWED = 'reviewed'
PROJECT_WINNER = 'winner'


class Project(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.Integer, primary_key=True)
    hackathon_id = db.Column(db.Integer, db.ForeignKey('hackathons.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='submitted')
    # Пишет только пересчет агрегата (logic.recompute_project_average)
    average_score = db.Column(db.Float, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    scores = db.relationship('Score', backref='project', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'submitted', 'reviewed', 'winner')", name="check_project_status"),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'averageScore': self.average_score,
            'submittedAt': self.submitted_at.isoformat() if self.submitted_at else None,
        }
