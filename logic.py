# logic.py
# Выставление оценок судьями и пересчет средней оценки проекта

import math
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from criteria import effective_criteria
from errors import AuthorizationError, NotFoundError, PersistenceError, PreconditionError, ValidationError
from extensions import db
from models import JudgeAssignment, Project, Score
from models.criterion import normalize_criterion_key
from models.project import PROJECT_REVIEWED, PROJECT_WINNER
from models.score import SYNC_DRAFT, SYNC_FINALIZED, SYNC_PENDING
from permissions import has_capability

ScoreResult = namedtuple('ScoreResult', ['score_id', 'total_score', 'is_draft', 'project_title'])


def round_half_up(value, digits=1):
    """round() в Python банковский, оценки округляем как на бумаге: 7.25 -> 7.3"""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_total_score(values):
    """
    Итог судьи = простое среднее фактически выставленных оценок, округленное до 0.1.
    Вес критерия здесь не участвует. Пустой набор дает 0.
    """
    values = list(values)
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values))


def validate_criterion_values(criterion_values, criteria):
    """
    Сопоставляет ключи из запроса с активными критериями по нормализованному имени,
    проверяет диапазоны и обязательные критерии. Возвращает {ключ критерия: оценка}.
    """
    if not isinstance(criterion_values, dict):
        raise ValidationError('Оценки должны передаваться объектом {критерий: значение}.')

    by_key = {c.key: c for c in criteria if c.is_active}
    cleaned = {}
    for raw_key, value in criterion_values.items():
        if value is None:
            continue
        key = normalize_criterion_key(raw_key)
        criterion = by_key.get(key)
        if criterion is None:
            raise ValidationError(f'Неизвестный критерий "{raw_key}".', code='unknown_criterion', criterion=raw_key)
        if key in cleaned:
            raise ValidationError(f'Критерий "{criterion.name}" передан дважды.', criterion=criterion.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f'Оценка по критерию "{criterion.name}" должна быть числом.', criterion=criterion.name)
        if value < criterion.min_score or value > criterion.max_score:
            raise ValidationError(
                f'Оценка по критерию "{criterion.name}" должна быть от {criterion.min_score:g} до {criterion.max_score:g}.',
                code='score_out_of_range', criterion=criterion.name
            )
        cleaned[key] = value

    for criterion in by_key.values():
        if criterion.is_required and criterion.key not in cleaned:
            raise ValidationError(
                f'Необходимо выставить оценку по критерию "{criterion.name}".',
                code='missing_required_criterion', criterion=criterion.name
            )
    return cleaned


def _insert_for_dialect():
    dialect = db.session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    elif dialect in ('mysql', 'mariadb'):
        from sqlalchemy.dialects.mysql import insert
    else:
        raise PersistenceError(f'Upsert оценок не поддерживается для СУБД {dialect}.')
    return dialect, insert


def upsert_score(project_id, judge_id, criterion_scores, total_score, comments, sync_status):
    """
    Одна атомарная вставка с ON CONFLICT по (project_id, judge_id): повторная отправка
    того же судьи перезаписывает запись, а не создает вторую.
    """
    dialect, insert = _insert_for_dialect()
    table = Score.__table__
    stmt = insert(table).values(
        project_id=project_id,
        judge_id=judge_id,
        criterion_scores=criterion_scores,
        total_score=total_score,
        comments=comments,
        sync_status=sync_status,
    )
    changed = ('criterion_scores', 'total_score', 'comments', 'sync_status')
    if dialect in ('mysql', 'mariadb'):
        stmt = stmt.on_duplicate_key_update(
            updated_at=db.func.current_timestamp(),
            **{name: stmt.inserted[name] for name in changed}
        )
    else:
        update = {name: stmt.excluded[name] for name in changed}
        update['updated_at'] = db.func.current_timestamp()
        # Зафиксированную оценку upsert не перезаписывает
        stmt = stmt.on_conflict_do_update(
            index_elements=['project_id', 'judge_id'], set_=update,
            where=table.c.sync_status != SYNC_FINALIZED,
        )
    db.session.execute(stmt)

    return db.session.execute(
        select(Score)
        .filter_by(project_id=project_id, judge_id=judge_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


def _locked_score(project_id, judge_id):
    return db.session.execute(
        select(Score)
        .filter_by(project_id=project_id, judge_id=judge_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def recompute_project_average(project_id):
    """
    Полный пересчет: среднее total_score по всем не-черновикам проекта.
    Не инкрементальный, потому что оценки перезаписываются, а не только добавляются.
    """
    project = db.session.execute(
        select(Project)
        .filter_by(id=project_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one()

    totals = db.session.execute(
        select(Score.total_score).where(Score.project_id == project.id, Score.sync_status != SYNC_DRAFT)
    ).scalars().all()
    if not totals:
        return project

    project.average_score = round_half_up(sum(totals) / len(totals))
    # Победителя назначает внешний процесс, его статус не откатываем
    if project.status != PROJECT_WINNER:
        project.status = PROJECT_REVIEWED
    db.session.flush()
    current_app.logger.info(
        'Проект %s: средняя оценка %.1f по %d оценкам', project.id, project.average_score, len(totals)
    )
    return project


def submit_score(user, project_id, hackathon_id, criterion_values, comments=None, is_draft=False):
    # 1. Роль
    if not has_capability(user, 'score.submit'):
        raise AuthorizationError('Выставлять оценки могут только судьи, модераторы и администраторы.')

    # 2. Назначение на хакатон (модераторы и администраторы могут без него)
    assignment = JudgeAssignment.query.filter_by(hackathon_id=hackathon_id, user_id=user.id).first()
    if assignment is None and not has_capability(user, 'score.bypass_assignment'):
        raise AuthorizationError('Вы не назначены судьей на этот хакатон.', code='not_assigned')

    # 3. Проект существует и принадлежит хакатону
    project = Project.query.filter_by(id=project_id, hackathon_id=hackathon_id).first()
    if project is None:
        raise NotFoundError('Проект не найден в этом хакатоне.', code='project_not_found')

    # 4. Этап хакатона
    if project.hackathon.status not in current_app.config['SCORABLE_HACKATHON_STATUSES']:
        raise PreconditionError('Хакатон не активен, оценки не принимаются.', code='hackathon_not_active')

    # 5. Значения по критериям
    if comments is not None and not isinstance(comments, str):
        raise ValidationError('Комментарий должен быть строкой.')
    criteria, _ = effective_criteria(hackathon_id)
    cleaned = validate_criterion_values(criterion_values, criteria)
    total_score = compute_total_score(cleaned.values())

    existing = _locked_score(project.id, user.id)
    if existing is not None and existing.sync_status == SYNC_FINALIZED:
        raise PreconditionError('Оценка уже зафиксирована и не может быть изменена.', code='score_finalized')

    sync_status = SYNC_DRAFT if is_draft else SYNC_PENDING
    try:
        score = upsert_score(project.id, user.id, cleaned, total_score, comments, sync_status)
        # Параллельный запрос мог зафиксировать оценку между проверкой и записью
        if score.sync_status == SYNC_FINALIZED:
            raise PreconditionError('Оценка уже зафиксирована и не может быть изменена.', code='score_finalized')
        if not is_draft:
            recompute_project_average(project.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Ошибка при сохранении оценки проекта %s судьей %s', project_id, user.id)
        raise PersistenceError('Не удалось сохранить оценку.')
    except Exception:
        # Запись оценки без пересчета агрегата не должна остаться в базе
        db.session.rollback()
        raise

    current_app.logger.info(
        'Судья %s оценил проект %s: %.1f (%s)', user.id, project.id, total_score, 'черновик' if is_draft else 'итог'
    )
    return ScoreResult(score.id, score.total_score, bool(is_draft), project.title)


def finalize_score(user, project_id):
    """
    Фиксирует отправленную (не черновую) оценку судьи: после этого повторная
    отправка по проекту отклоняется. Повторная фиксация ничего не меняет.
    """
    if not has_capability(user, 'score.submit'):
        raise AuthorizationError('Фиксировать оценки могут только судьи, модераторы и администраторы.')

    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError('Проект не найден.', code='project_not_found')

    assignment = JudgeAssignment.query.filter_by(hackathon_id=project.hackathon_id, user_id=user.id).first()
    if assignment is None and not has_capability(user, 'score.bypass_assignment'):
        raise AuthorizationError('Вы не назначены судьей на этот хакатон.', code='not_assigned')

    if project.hackathon.status not in current_app.config['SCORABLE_HACKATHON_STATUSES']:
        raise PreconditionError('Хакатон не активен, оценки не принимаются.', code='hackathon_not_active')

    score = _locked_score(project.id, user.id)
    if score is None:
        raise NotFoundError('Оценка для этого проекта не найдена.', code='score_not_found')
    if score.sync_status == SYNC_DRAFT:
        raise PreconditionError('Черновик нельзя зафиксировать, сначала отправьте оценку.', code='score_is_draft')
    if score.sync_status == SYNC_FINALIZED:
        return ScoreResult(score.id, score.total_score, False, project.title)

    try:
        score.sync_status = SYNC_FINALIZED
        db.session.flush()
        recompute_project_average(project.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Ошибка при фиксации оценки проекта %s судьей %s', project_id, user.id)
        raise PersistenceError('Не удалось зафиксировать оценку.')
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info('Судья %s зафиксировал оценку проекта %s: %.1f', user.id, project.id, score.total_score)
    return ScoreResult(score.id, score.total_score, False, project.title)
