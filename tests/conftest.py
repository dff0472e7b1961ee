from types import SimpleNamespace

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import Hackathon, JudgeAssignment, Project, User


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed(app):
    """Активный хакатон без своих критериев, три проекта, два назначенных судьи."""
    users = {
        'admin': User(code='000001', role='admin'),
        'moderator': User(code='000002', role='moderator'),
        'organizer': User(code='100001', role='participant'),
        'participant': User(code='100002', role='participant'),
        'judge1': User(code='200001', role='judge'),
        'judge2': User(code='200002', role='judge'),
        'outsider': User(code='200003', role='judge'),
    }
    db.session.add_all(users.values())
    db.session.commit()

    hackathon = Hackathon(title='Spring Hack', status='active', organizer_id=users['organizer'].id)
    draft_hackathon = Hackathon(title='Not Started', status='draft', organizer_id=users['organizer'].id)
    db.session.add_all([hackathon, draft_hackathon])
    db.session.commit()

    projects = [Project(hackathon_id=hackathon.id, title=f'Project {n}') for n in range(1, 4)]
    draft_project = Project(hackathon_id=draft_hackathon.id, title='Early Bird')
    db.session.add_all(projects + [draft_project])
    db.session.commit()

    db.session.add_all([
        JudgeAssignment(hackathon_id=hackathon.id, user_id=users['judge1'].id, role='lead',
                        expertise=['defi'], assigned_projects=[p.id for p in projects]),
        JudgeAssignment(hackathon_id=hackathon.id, user_id=users['judge2'].id,
                        assigned_projects=[projects[0].id]),
        JudgeAssignment(hackathon_id=draft_hackathon.id, user_id=users['judge1'].id,
                        assigned_projects=[draft_project.id]),
    ])
    db.session.commit()

    return SimpleNamespace(
        hackathon=hackathon,
        draft_hackathon=draft_hackathon,
        projects=projects,
        draft_project=draft_project,
        **users,
    )


def uniform_scores(value):
    return {
        'innovation': value,
        'technicalComplexity': value,
        'userExperience': value,
        'businessPotential': value,
        'presentation': value,
    }


def login(client, user):
    response = client.post('/login', json={'code': user.code})
    assert response.status_code == 200
    return response
