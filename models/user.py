# models/user.py

from extensions import db
from sqlalchemy import CheckConstraint

ROLE_PARTICIPANT = 'participant'
ROLE_JUDGE = 'judge'
ROLE_MODERATOR = 'moderator'
ROLE_ADMIN = 'admin'


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False)
    nickname = db.Column(db.String(100), nullable=True, index=True)
    role = db.Column(db.String, nullable=False, default=ROLE_PARTICIPANT)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    judge_assignments = db.relationship('JudgeAssignment', backref='user', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('participant', 'judge', 'moderator', 'admin')", name="check_role"),
    )

    def to_dict(self):
        return {'id': self.id, 'nickname': self.nickname or self.code, 'role': self.role}
