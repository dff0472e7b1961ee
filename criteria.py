# criteria.py
# Хранилище критериев оценки: выдача, рубрика по умолчанию и управление критериями

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError
from extensions import db
from models import Hackathon, JudgeAssignment, ScoringCriterion
from models.criterion import normalize_criterion_key
from permissions import has_capability, is_elevated, is_organizer

MAX_TOTAL_WEIGHT = 100
CRITERIA_TYPES = ('standard', 'custom', 'bonus')

DEFAULT_RUBRIC = [
    {
        'name': 'Innovation',
        'description': 'Creativity and uniqueness of the solution',
        'help_text': 'Rate the innovation and creativity of the project',
    },
    {
        'name': 'Technical Complexity',
        'description': 'Technical difficulty and implementation quality',
        'help_text': 'Rate the technical complexity and code quality',
    },
    {
        'name': 'User Experience',
        'description': 'Usability and user interface design',
        'help_text': 'Rate the user experience and interface design',
    },
    {
        'name': 'Business Potential',
        'description': 'Market viability and business model',
        'help_text': 'Rate the business potential and market viability',
    },
    {
        'name': 'Presentation',
        'description': 'Quality of project presentation and demo',
        'help_text': 'Rate the presentation quality and demo effectiveness',
    },
]


def default_rubric(hackathon_id):
    """
    Пять равновесных критериев (вес 20, диапазон 0-10, все обязательные).
    Объекты не добавляются в сессию и помечены is_custom = False.
    """
    rubric = []
    for order, item in enumerate(DEFAULT_RUBRIC):
        criterion = ScoringCriterion(
            hackathon_id=hackathon_id,
            key=normalize_criterion_key(item['name']),
            name=item['name'],
            description=item['description'],
            help_text=item['help_text'],
            weight=20,
            min_score=0,
            max_score=10,
            is_required=True,
            is_active=True,
            criteria_type='standard',
            display_order=order,
        )
        criterion.is_custom = False
        rubric.append(criterion)
    return rubric


def load_hackathon(hackathon_id):
    hackathon = db.session.get(Hackathon, hackathon_id)
    if hackathon is None:
        raise NotFoundError('Хакатон не найден.', code='hackathon_not_found')
    return hackathon


def effective_criteria(hackathon_id, include_inactive=False):
    """
    Критерии хакатона по displayOrder, затем по времени создания.
    Если своих критериев нет совсем, возвращается рубрика по умолчанию.
    Возвращает пару (критерии, is_custom).
    """
    query = ScoringCriterion.query.filter_by(hackathon_id=hackathon_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    criteria = query.order_by(
        ScoringCriterion.display_order, ScoringCriterion.created_at, ScoringCriterion.id
    ).all()
    if criteria:
        return criteria, True

    # Неактивные критерии тоже считаются "своими": рубрика по умолчанию только для пустого хакатона
    has_any = db.session.query(
        ScoringCriterion.query.filter_by(hackathon_id=hackathon_id).exists()
    ).scalar()
    if has_any:
        return [], True
    return default_rubric(hackathon_id), False


def criteria_statistics(criteria, is_custom):
    active = [c for c in criteria if c.is_active]
    return {
        'totalCriteria': len(criteria),
        'activeCriteria': len(active),
        'requiredCriteria': len([c for c in active if c.is_required]),
        'totalWeight': sum(float(c.weight) for c in active),
        'maxPossibleScore': sum(float(c.max_score) for c in active),
        'isCustom': is_custom,
    }


def get_criteria(hackathon_id, user, include_inactive=False):
    hackathon = load_hackathon(hackathon_id)

    if not has_capability(user, 'criteria.view', hackathon):
        raise AuthorizationError('Просмотр критериев доступен только авторизованным пользователям.')
    if include_inactive and not has_capability(user, 'criteria.view_inactive', hackathon):
        raise AuthorizationError('Неактивные критерии доступны только организатору и администраторам.')

    criteria, is_custom = effective_criteria(hackathon.id, include_inactive=include_inactive)
    is_judge = JudgeAssignment.query.filter_by(hackathon_id=hackathon.id, user_id=user.id).first() is not None

    return {
        'hackathon': {'id': hackathon.id, 'title': hackathon.title, 'status': hackathon.status},
        'criteria': [c.to_dict() for c in criteria],
        'statistics': criteria_statistics(criteria, is_custom),
        'permissions': {
            'canEdit': is_organizer(user, hackathon) or is_elevated(user),
            'canView': True,
            'isOrganizer': is_organizer(user, hackathon),
            'isJudge': is_judge,
        },
    }


# --- Управление критериями (организатор и администраторы) ---

def _number(data, field, low, high, default=None):
    value = data.get(field, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'Поле "{field}" должно быть числом.', details={'field': field})
    if value < low or value > high:
        raise ValidationError(
            f'Поле "{field}" должно быть в диапазоне от {low} до {high}.', details={'field': field}
        )
    return value


def _flag(data, field, default):
    value = data.get(field, default)
    if not isinstance(value, bool):
        raise ValidationError(f'Поле "{field}" должно быть логическим значением.', details={'field': field})
    return value


def _optional_text(data, field):
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'Поле "{field}" должно быть строкой.', details={'field': field})
    return value


def clean_criterion_payload(data, current=None):
    """
    Проверяет поля критерия из запроса. Если передан current, это частичное
    обновление и отсутствующие поля берутся из существующего критерия.
    """
    if not isinstance(data, dict):
        raise ValidationError('Критерий должен быть объектом.')

    def existing(attr, fallback):
        return getattr(current, attr) if current is not None else fallback

    name = data.get('criteriaName', existing('name', None))
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Название критерия обязательно.', details={'field': 'criteriaName'})

    cleaned = {
        'name': name.strip(),
        'description': _optional_text(data, 'description') if 'description' in data else existing('description', None),
        'help_text': _optional_text(data, 'helpText') if 'helpText' in data else existing('help_text', None),
        'weight': _number(data, 'weight', 0, 100, existing('weight', None)),
        'max_score': _number(data, 'maxScore', 1, 100, existing('max_score', 10)),
        'min_score': _number(data, 'minScore', 0, 99, existing('min_score', 0)),
        'is_required': _flag(data, 'isRequired', existing('is_required', True)),
        'is_active': _flag(data, 'isActive', existing('is_active', True)),
    }

    criteria_type = data.get('criteriaType', existing('criteria_type', 'standard'))
    if criteria_type not in CRITERIA_TYPES:
        raise ValidationError('Неизвестный тип критерия.', details={'field': 'criteriaType'})
    cleaned['criteria_type'] = criteria_type

    if 'displayOrder' in data:
        order = data['displayOrder']
        if isinstance(order, bool) or not isinstance(order, int) or order < 0:
            raise ValidationError('displayOrder должен быть неотрицательным целым.', details={'field': 'displayOrder'})
        cleaned['display_order'] = order

    if cleaned['min_score'] >= cleaned['max_score']:
        raise ValidationError(
            'Минимальная оценка должна быть меньше максимальной.',
            code='invalid_score_range', criterion=cleaned['name']
        )
    return cleaned


def _active_weight(hackathon_id, exclude_id=None):
    query = db.session.query(func.coalesce(func.sum(ScoringCriterion.weight), 0)).filter(
        ScoringCriterion.hackathon_id == hackathon_id,
        ScoringCriterion.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(ScoringCriterion.id != exclude_id)
    return float(query.scalar())


def _check_weight(total_weight):
    if total_weight > MAX_TOTAL_WEIGHT:
        raise ValidationError(
            f'Суммарный вес активных критериев не может превышать {MAX_TOTAL_WEIGHT}.',
            code='weight_exceeds_limit', details={'totalWeight': total_weight}
        )


def _require_manage(user, hackathon):
    if not has_capability(user, 'criteria.manage', hackathon):
        raise AuthorizationError('Управлять критериями может только организатор или администратор.')


def _commit(action):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('Критерий с таким названием уже существует.', code='duplicate_criterion')
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Ошибка при сохранении критериев (%s)', action)
        raise PersistenceError('Не удалось сохранить критерии.')


def _key_for(name):
    key = normalize_criterion_key(name)
    if not key:
        raise ValidationError('Название критерия должно содержать буквы или цифры.', details={'field': 'criteriaName'})
    return key


def create_criterion(user, hackathon_id, data):
    hackathon = load_hackathon(hackathon_id)
    _require_manage(user, hackathon)

    cleaned = clean_criterion_payload(data)
    key = _key_for(cleaned['name'])
    if ScoringCriterion.query.filter_by(hackathon_id=hackathon.id, key=key).first():
        raise ValidationError('Критерий с таким названием уже существует.', code='duplicate_criterion',
                              criterion=cleaned['name'])

    if cleaned['is_active']:
        _check_weight(_active_weight(hackathon.id) + cleaned['weight'])

    criterion = ScoringCriterion(hackathon_id=hackathon.id, key=key, created_by=user.id, updated_by=user.id, **cleaned)
    db.session.add(criterion)
    _commit('create')
    current_app.logger.info('Критерий "%s" создан для хакатона %s', criterion.name, hackathon.id)
    return criterion


def create_criteria_batch(user, hackathon_id, items, replace_existing=False):
    """
    Создает набор критериев одной транзакцией: либо все, либо ни одного.
    При replace_existing существующие критерии хакатона удаляются.
    """
    hackathon = load_hackathon(hackathon_id)
    _require_manage(user, hackathon)

    if not isinstance(items, list) or not items:
        raise ValidationError('Нужен непустой список критериев.', details={'field': 'criteria'})

    cleaned_items = []
    seen_keys = set()
    for index, item in enumerate(items):
        cleaned = clean_criterion_payload(item)
        key = _key_for(cleaned['name'])
        if key in seen_keys:
            raise ValidationError('Названия критериев повторяются.', code='duplicate_criterion',
                                  criterion=cleaned['name'])
        seen_keys.add(key)
        cleaned.setdefault('display_order', index)
        cleaned_items.append((key, cleaned))

    batch_weight = sum(c['weight'] for _, c in cleaned_items if c['is_active'])
    existing_weight = 0 if replace_existing else _active_weight(hackathon.id)
    _check_weight(existing_weight + batch_weight)

    if not replace_existing:
        existing_keys = {
            key for (key,) in db.session.query(ScoringCriterion.key).filter_by(hackathon_id=hackathon.id)
        }
        clash = seen_keys & existing_keys
        if clash:
            raise ValidationError('Критерий с таким названием уже существует.', code='duplicate_criterion',
                                  details={'keys': sorted(clash)})

    if replace_existing:
        ScoringCriterion.query.filter_by(hackathon_id=hackathon.id).delete(synchronize_session=False)

    created = [
        ScoringCriterion(hackathon_id=hackathon.id, key=key, created_by=user.id, updated_by=user.id, **cleaned)
        for key, cleaned in cleaned_items
    ]
    db.session.add_all(created)
    _commit('batch')
    current_app.logger.info(
        'Для хакатона %s сохранено %d критериев (replace_existing=%s)', hackathon.id, len(created), replace_existing
    )
    return {'hackathonId': hackathon.id, 'criteriaCount': len(created), 'totalWeight': existing_weight + batch_weight}


def update_criterion(user, criterion_id, data):
    criterion = db.session.get(ScoringCriterion, criterion_id)
    if criterion is None:
        raise NotFoundError('Критерий не найден.', code='criterion_not_found')
    _require_manage(user, criterion.hackathon)

    cleaned = clean_criterion_payload(data, current=criterion)
    if cleaned['is_active']:
        _check_weight(_active_weight(criterion.hackathon_id, exclude_id=criterion.id) + cleaned['weight'])

    # key не трогаем: переименование не должно ломать уже выставленные оценки
    for attr, value in cleaned.items():
        setattr(criterion, attr, value)
    criterion.updated_by = user.id
    _commit('update')
    current_app.logger.info('Критерий %s обновлен', criterion.id)
    return criterion
