# seed_data.py
# Заполняет базу демонстрационным хакатоном с проектами, судьями и критериями

from datetime import datetime

from app import create_app
from extensions import db
from models import User, Hackathon, Project, ScoringCriterion, JudgeAssignment, Score

# Создаем экземпляр приложения, чтобы получить контекст
app = create_app()

with app.app_context():
    db.create_all()

    # --- 1. ОЧИСТКА ДАННЫХ ---
    app.logger.info("Очистка старых данных...")
    # Идем в обратном порядке зависимостей
    db.session.query(Score).delete()
    db.session.query(JudgeAssignment).delete()
    db.session.query(ScoringCriterion).delete()
    db.session.query(Project).delete()
    db.session.query(Hackathon).delete()
    db.session.query(User).delete()
    db.session.commit()

    # --- 2. СОЗДАНИЕ ДАННЫХ ---
    try:
        admin = User(code='000001', nickname='admin', role='admin')
        organizer = User(code='100001', nickname='organizer', role='participant')
        judge1 = User(code='200001', nickname='judge-1', role='judge')
        judge2 = User(code='200002', nickname='judge-2', role='judge')
        db.session.add_all([admin, organizer, judge1, judge2])
        db.session.commit()

        hackathon = Hackathon(
            title='Web3 Hackathon 2025', status='active', organizer_id=organizer.id,
            start_date=datetime(2025, 7, 10), end_date=datetime(2025, 7, 12)
        )
        # Хакатон без своих критериев: оценивается по рубрике по умолчанию
        legacy = Hackathon(title='Demo Day', status='completed', organizer_id=organizer.id)
        db.session.add_all([hackathon, legacy])
        db.session.commit()

        projects = [
            Project(hackathon_id=hackathon.id, title='ChainVote', submitted_at=datetime(2025, 7, 12, 9, 0)),
            Project(hackathon_id=hackathon.id, title='DeFi Lens', submitted_at=datetime(2025, 7, 12, 10, 30)),
            Project(hackathon_id=hackathon.id, title='NFT Tickets', submitted_at=datetime(2025, 7, 12, 11, 15)),
            Project(hackathon_id=legacy.id, title='Pitch Deck Bot'),
        ]
        db.session.add_all(projects)
        db.session.commit()

        criteria = [
            ScoringCriterion(hackathon_id=hackathon.id, key='innovation', name='Innovation', weight=40,
                             min_score=0, max_score=10, display_order=0),
            ScoringCriterion(hackathon_id=hackathon.id, key='security', name='Security', weight=35,
                             min_score=0, max_score=10, display_order=1),
            ScoringCriterion(hackathon_id=hackathon.id, key='demo', name='Demo', weight=25,
                             min_score=1, max_score=5, is_required=False, display_order=2),
        ]
        db.session.add_all(criteria)

        db.session.add_all([
            JudgeAssignment(hackathon_id=hackathon.id, user_id=judge1.id, role='lead',
                            expertise=['defi', 'security'], assigned_projects=[p.id for p in projects[:3]]),
            JudgeAssignment(hackathon_id=hackathon.id, user_id=judge2.id,
                            expertise=['ux'], assigned_projects=[projects[0].id, projects[2].id]),
        ])
        db.session.commit()

        app.logger.info("Тестовые данные успешно добавлены!")
    except Exception:
        db.session.rollback()
        app.logger.exception("Произошла ошибка при добавлении данных")
        raise
