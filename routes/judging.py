# routes/judging.py
# API судейства: критерии, выставление оценок, назначения и результаты

from flask import Blueprint, jsonify, request

from criteria import get_criteria
from errors import ValidationError
from logic import finalize_score, submit_score
from progress import get_assignments, get_results
from routes.auth import current_user, login_required

judging_bp = Blueprint('judging', __name__, url_prefix='/judging')


def _flag_arg(name):
    return request.args.get(name, 'false').lower() == 'true'


def _id_field(data, field):
    value = data.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'Поле "{field}" обязательно и должно быть целым числом.', details={'field': field})
    return value


@judging_bp.route('/criteria/<int:hackathon_id>', methods=['GET'])
@login_required
def criteria(hackathon_id):
    data = get_criteria(hackathon_id, current_user(), include_inactive=_flag_arg('includeInactive'))
    return jsonify({'success': True, 'data': data})


@judging_bp.route('/score', methods=['POST'])
@login_required
def score():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Тело запроса должно быть JSON-объектом.')

    is_draft = data.get('isDraft', False)
    if not isinstance(is_draft, bool):
        raise ValidationError('Поле "isDraft" должно быть логическим значением.', details={'field': 'isDraft'})

    result = submit_score(
        current_user(),
        project_id=_id_field(data, 'projectId'),
        hackathon_id=_id_field(data, 'hackathonId'),
        criterion_values=data.get('scores', data.get('criterionValues', {})),
        comments=data.get('comments'),
        is_draft=is_draft,
    )
    return jsonify({
        'success': True,
        'message': 'Черновик сохранен.' if result.is_draft else 'Оценка отправлена.',
        'data': {
            'scoreId': result.score_id,
            'totalScore': result.total_score,
            'isDraft': result.is_draft,
            'projectTitle': result.project_title,
        },
    })


@judging_bp.route('/score/<int:project_id>/finalize', methods=['POST'])
@login_required
def finalize(project_id):
    result = finalize_score(current_user(), project_id)
    return jsonify({
        'success': True,
        'message': 'Оценка зафиксирована.',
        'data': {
            'scoreId': result.score_id,
            'totalScore': result.total_score,
            'isDraft': result.is_draft,
            'projectTitle': result.project_title,
        },
    })


@judging_bp.route('/assignments', methods=['GET'])
@login_required
def assignments():
    data = get_assignments(
        current_user(),
        hackathon_id=request.args.get('hackathonId', type=int),
        judge_id=request.args.get('judgeId', type=int),
    )
    return jsonify({'success': True, 'data': data})


@judging_bp.route('/results/<int:hackathon_id>', methods=['GET'])
@login_required
def results(hackathon_id):
    data = get_results(
        current_user(),
        hackathon_id,
        include_drafts=_flag_arg('includeDrafts'),
        sort_by=request.args.get('sortBy', 'totalScore'),
        sort_order=request.args.get('sortOrder', 'desc'),
    )
    return jsonify({'success': True, 'data': data})
