from extensions import db
from sqlalchemy import CheckConstraint

SYNC_DRAFT = 'draft'
SYNC_PENDING = 'pending'
SYNC_FINALIZED = 'finalized'


class Score(db.Model):
    __tablename__ = 'scores'
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    # {ключ критерия: оценка}, у черновика часть ключей может отсутствовать
    criterion_scores = db.Column(db.JSON, nullable=False, default=dict)
    total_score = db.Column(db.Float, nullable=False, default=0)
    comments = db.Column(db.Text, nullable=True)
    sync_status = db.Column(db.String(20), nullable=False, default=SYNC_DRAFT)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    judge = db.relationship('User')

    __table_args__ = (
        # Одна запись на пару (проект, судья): на этом ключе держится upsert
        db.UniqueConstraint('project_id', 'judge_id', name='unique_project_judge_score'),
        CheckConstraint("total_score >= 0", name="check_total_score"),
        CheckConstraint("sync_status IN ('draft', 'pending', 'finalized')", name="check_sync_status"),
    )

    @property
    def is_draft(self):
        return self.sync_status == SYNC_DRAFT

    def to_dict(self):
        return {
            'id': self.id,
            'projectId': self.project_id,
            'judge': self.judge.to_dict() if self.judge else None,
            'scores': dict(self.criterion_scores or {}),
            'totalScore': self.total_score,
            'comments': self.comments,
            'isDraft': self.is_draft,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
