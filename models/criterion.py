# models/criterion.py

from extensions import db
from sqlalchemy import CheckConstraint, UniqueConstraint


def normalize_criterion_key(name):
    """
    Приводит название критерия или ключ из запроса к единому виду:
    'Technical Complexity', 'technicalComplexity' и 'technical_complexity'
    дают одно и то же 'technicalcomplexity'.
    """
    return ''.join(ch for ch in str(name).casefold() if ch.isalnum())


class ScoringCriterion(db.Model):
    __tablename__ = 'scoring_criteria'
    id = db.Column(db.Integer, primary_key=True)
    hackathon_id = db.Column(db.Integer, db.ForeignKey('hackathons.id', ondelete='CASCADE'), nullable=False, index=True)

    # Ключ поля в оценке. Задается один раз при создании и не меняется при переименовании.
    key = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    weight = db.Column(db.Float, nullable=False, default=0)
    max_score = db.Column(db.Float, nullable=False, default=10)
    min_score = db.Column(db.Float, nullable=False, default=0)
    is_required = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    criteria_type = db.Column(db.String(20), nullable=False, default='standard')
    help_text = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(), onupdate=db.func.current_timestamp())

    __table_args__ = (
        UniqueConstraint('hackathon_id', 'key', name='unique_hackathon_criterion_key'),
        CheckConstraint("min_score < max_score", name="check_criterion_range"),
        CheckConstraint("criteria_type IN ('standard', 'custom', 'bonus')", name="check_criteria_type"),
    )

    # Синтетические критерии рубрики по умолчанию в базе не хранятся
    is_custom = True

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'criteriaName': self.name,
            'description': self.description,
            'weight': self.weight,
            'maxScore': self.max_score,
            'minScore': self.min_score,
            'isRequired': self.is_required,
            'isActive': self.is_active,
            'criteriaType': self.criteria_type,
            'helpText': self.help_text,
            'displayOrder': self.display_order,
            'isCustom': self.is_custom,
        }
