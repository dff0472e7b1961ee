# routes/admin.py
# Управление критериями оценки (организатор хакатона, модераторы, администраторы)

from flask import Blueprint, jsonify, request

from criteria import create_criteria_batch, create_criterion, get_criteria, load_hackathon, update_criterion
from errors import AuthorizationError, ValidationError
from permissions import has_capability
from routes.auth import current_user, login_required

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Тело запроса должно быть JSON-объектом.')
    return data


@admin_bp.route('/judging/criteria', methods=['GET'])
@login_required
def list_criteria():
    hackathon_id = request.args.get('hackathonId', type=int)
    if hackathon_id is None:
        raise ValidationError('Параметр hackathonId обязателен.', details={'field': 'hackathonId'})

    user = current_user()
    if not has_capability(user, 'criteria.manage', load_hackathon(hackathon_id)):
        raise AuthorizationError('Управлять критериями может только организатор или администратор.')

    include_inactive = request.args.get('includeInactive', 'false').lower() == 'true'
    return jsonify({'success': True, 'data': get_criteria(hackathon_id, user, include_inactive=include_inactive)})


@admin_bp.route('/judging/criteria', methods=['POST'])
@login_required
def add_criteria():
    data = _json_body()
    hackathon_id = data.get('hackathonId')
    if isinstance(hackathon_id, bool) or not isinstance(hackathon_id, int):
        raise ValidationError('Поле "hackathonId" обязательно.', details={'field': 'hackathonId'})

    # Пакетное создание, если пришел список критериев
    if 'criteria' in data:
        replace_existing = data.get('replaceExisting', False)
        if not isinstance(replace_existing, bool):
            raise ValidationError('Поле "replaceExisting" должно быть логическим значением.')
        summary = create_criteria_batch(current_user(), hackathon_id, data['criteria'], replace_existing)
        return jsonify({'success': True, 'data': summary}), 201

    criterion = create_criterion(current_user(), hackathon_id, data)
    return jsonify({'success': True, 'data': criterion.to_dict()}), 201


@admin_bp.route('/judging/criteria/<int:criterion_id>', methods=['PATCH'])
@login_required
def edit_criterion(criterion_id):
    criterion = update_criterion(current_user(), criterion_id, _json_body())
    return jsonify({'success': True, 'data': criterion.to_dict()})
