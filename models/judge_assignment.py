# models/judge_assignment.py
# Назначения создаются внешним процессом, движок оценок их только читает

from extensions import db


class JudgeAssignment(db.Model):
    __tablename__ = 'judge_assignments'
    id = db.Column(db.Integer, primary_key=True)
    hackathon_id = db.Column(db.Integer, db.ForeignKey('hackathons.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = db.Column(db.String(30), nullable=False, default='judge')
    expertise = db.Column(db.JSON, nullable=False, default=list)

    # Упорядоченный список id проектов, за которые отвечает судья
    assigned_projects = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    __table_args__ = (
        db.UniqueConstraint('hackathon_id', 'user_id', name='unique_judge_hackathon'),
    )

    @property
    def assigned_project_ids(self):
        if not isinstance(self.assigned_projects, list):
            return []
        return [pid for pid in self.assigned_projects if isinstance(pid, int) and not isinstance(pid, bool)]
