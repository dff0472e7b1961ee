# models/__init__.py
# Инициализация моделей

from .user import User
from .hackathon import Hackathon
from .project import Project
from .criterion import ScoringCriterion
from .judge_assignment import JudgeAssignment
from .score import Score
