import pytest

import logic
from conftest import login, uniform_scores
from errors import AuthorizationError, NotFoundError, PreconditionError, ValidationError
from extensions import db
from logic import compute_total_score, finalize_score, submit_score
from models import Project, Score, ScoringCriterion


def project_state(project_id):
    db.session.expire_all()
    project = db.session.get(Project, project_id)
    return project.average_score, project.status


def snapshot():
    db.session.expire_all()
    return (
        sorted((s.project_id, s.judge_id, s.total_score, s.sync_status) for s in Score.query.all()),
        sorted((p.id, p.average_score, p.status) for p in Project.query.all()),
    )


@pytest.mark.parametrize('values, expected', [
    ([], 0),
    ([7], 7.0),
    ([8, 6], 7.0),
    ([7, 8, 8], 7.7),
    ([7.25, 7.25], 7.3),
    ([10, 9, 9, 9], 9.3),
    ([0, 0, 1], 0.3),
])
def test_total_is_rounded_mean_of_submitted_values(values, expected):
    assert compute_total_score(values) == expected


def test_average_follows_latest_final_scores(seed):
    project = seed.projects[0]

    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(8))
    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(6))
    assert project_state(project.id) == (7.0, 'reviewed')

    # Повторная отправка заменяет оценку судьи, а не добавляет новую
    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(10))
    assert project_state(project.id) == (8.0, 'reviewed')
    assert Score.query.filter_by(project_id=project.id).count() == 2


def test_one_row_per_project_and_judge(seed):
    project = seed.projects[1]
    first = submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(3), is_draft=True)
    second = submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(5), comments='better')
    third = submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(4), is_draft=True)

    assert first.score_id == second.score_id == third.score_id
    rows = Score.query.filter_by(project_id=project.id, judge_id=seed.judge1.id).all()
    assert len(rows) == 1
    assert rows[0].total_score == 4.0
    assert rows[0].comments is None
    assert rows[0].is_draft


def test_draft_never_touches_the_average(seed):
    project = seed.projects[0]
    result = submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(9), is_draft=True)

    assert result.is_draft is True
    assert result.total_score == 9.0
    assert result.project_title == 'Project 1'
    assert project_state(project.id) == (None, 'submitted')

    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(5))
    # Черновик первого судьи в среднее не входит
    assert project_state(project.id) == (5.0, 'reviewed')


def test_turning_a_final_score_back_into_a_draft_drops_it_on_next_recompute(seed):
    project = seed.projects[0]
    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(8))
    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(2), is_draft=True)
    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(6))

    assert project_state(project.id) == (6.0, 'reviewed')


def test_missing_required_criterion_changes_nothing(seed):
    project = seed.projects[0]
    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(6))
    before = snapshot()

    values = uniform_scores(9)
    del values['presentation']
    with pytest.raises(ValidationError) as exc:
        submit_score(seed.judge1, project.id, seed.hackathon.id, values)

    assert exc.value.code == 'missing_required_criterion'
    assert exc.value.criterion == 'Presentation'
    assert snapshot() == before


def test_optional_criteria_may_be_skipped(seed):
    db.session.add_all([
        ScoringCriterion(hackathon_id=seed.hackathon.id, key='security', name='Security',
                         weight=50, min_score=0, max_score=10),
        ScoringCriterion(hackathon_id=seed.hackathon.id, key='demo', name='Demo',
                         weight=50, min_score=1, max_score=5, is_required=False),
    ])
    db.session.commit()

    result = submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, {'Security': 7})
    assert result.total_score == 7.0

    # Вес не учитывается: простое среднее 7 и 2
    result = submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, {'security': 7, 'demo': 2})
    assert result.total_score == 4.5


def test_custom_range_is_enforced(seed):
    db.session.add(ScoringCriterion(hackathon_id=seed.hackathon.id, key='demo', name='Demo',
                                    weight=10, min_score=1, max_score=5))
    db.session.commit()

    for bad in (0, 6, '3', True):
        with pytest.raises(ValidationError) as exc:
            submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, {'demo': bad})
        assert exc.value.criterion == 'Demo'

    assert submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, {'demo': 5}).total_score == 5.0


def test_default_rubric_range_is_zero_to_ten(seed):
    values = uniform_scores(8)
    values['innovation'] = 11
    with pytest.raises(ValidationError) as exc:
        submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, values)
    assert exc.value.code == 'score_out_of_range'


def test_unknown_and_malformed_values_are_rejected(seed):
    with pytest.raises(ValidationError) as exc:
        submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, dict(uniform_scores(5), speed=4))
    assert exc.value.code == 'unknown_criterion'

    with pytest.raises(ValidationError):
        submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, [5, 5, 5, 5, 5])
    assert Score.query.count() == 0


def test_unassigned_judge_is_rejected_before_payload_checks(seed):
    with pytest.raises(AuthorizationError) as exc:
        submit_score(seed.outsider, seed.projects[0].id, seed.hackathon.id, 'garbage')
    assert exc.value.code == 'not_assigned'


def test_participant_cannot_score(seed):
    with pytest.raises(AuthorizationError) as exc:
        submit_score(seed.participant, seed.projects[0].id, seed.hackathon.id, uniform_scores(5))
    assert exc.value.code == 'insufficient_permissions'


def test_elevated_roles_score_without_assignment(seed):
    project = seed.projects[2]
    submit_score(seed.moderator, project.id, seed.hackathon.id, uniform_scores(4))
    submit_score(seed.admin, project.id, seed.hackathon.id, uniform_scores(9))

    assert project_state(project.id) == (6.5, 'reviewed')


def test_project_must_belong_to_hackathon(seed):
    with pytest.raises(NotFoundError) as exc:
        submit_score(seed.admin, seed.draft_project.id, seed.hackathon.id, uniform_scores(5))
    assert exc.value.code == 'project_not_found'


@pytest.mark.parametrize('role', ['judge1', 'admin'])
def test_draft_hackathon_is_not_scorable(seed, role):
    with pytest.raises(PreconditionError) as exc:
        submit_score(getattr(seed, role), seed.draft_project.id, seed.draft_hackathon.id, uniform_scores(5))
    assert exc.value.code == 'hackathon_not_active'


def test_completed_hackathon_is_scorable(seed):
    seed.hackathon.status = 'completed'
    db.session.commit()

    assert submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, uniform_scores(5)).total_score == 5.0


def test_failed_recompute_rolls_back_the_score(seed, monkeypatch):
    def broken_recompute(project_id):
        raise RuntimeError('recompute failed')

    monkeypatch.setattr(logic, 'recompute_project_average', broken_recompute)

    with pytest.raises(RuntimeError):
        submit_score(seed.judge1, seed.projects[0].id, seed.hackathon.id, uniform_scores(8))

    assert Score.query.count() == 0
    assert project_state(seed.projects[0].id) == (None, 'submitted')


def test_winner_status_is_kept(seed):
    project = seed.projects[0]
    project.status = 'winner'
    db.session.commit()

    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(7))
    assert project_state(project.id) == (7.0, 'winner')


def test_score_endpoint(client, seed):
    project = seed.projects[0]
    login(client, seed.judge1)

    response = client.post('/judging/score', json={
        'projectId': project.id,
        'hackathonId': seed.hackathon.id,
        'scores': uniform_scores(8),
        'comments': 'solid demo',
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['totalScore'] == 8.0
    assert body['data']['isDraft'] is False
    assert body['data']['projectTitle'] == 'Project 1'

    response = client.post('/judging/score', json={
        'projectId': project.id,
        'hackathonId': seed.hackathon.id,
        'scores': {'innovation': 8},
    })
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'missing_required_criterion'
    assert body['details']['criterion'] == 'Technical Complexity'


def test_score_endpoint_rejects_malformed_body(client, seed):
    login(client, seed.judge1)

    response = client.post('/judging/score', json={'projectId': 'abc', 'hackathonId': seed.hackathon.id})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'invalid_data'

    response = client.post('/judging/score', json={
        'projectId': seed.projects[0].id,
        'hackathonId': seed.draft_hackathon.id,
        'scores': uniform_scores(5),
    })
    assert response.status_code == 404


@pytest.mark.parametrize('is_draft', ['false', 'true'])
@pytest.mark.parametrize('literal', ['NaN', 'Infinity', '-Infinity'])
def test_non_finite_values_are_rejected(client, seed, literal, is_draft):
    login(client, seed.judge1)
    # json.dumps не пишет NaN, поэтому тело собирается вручную
    body = (
        '{"projectId": %d, "hackathonId": %d, "isDraft": %s, "scores": {'
        '"innovation": %s, "technicalComplexity": 5, "userExperience": 5, '
        '"businessPotential": 5, "presentation": 5}}'
        % (seed.projects[0].id, seed.hackathon.id, is_draft, literal)
    )
    response = client.post('/judging/score', data=body, content_type='application/json')

    assert response.status_code == 400
    payload = response.get_json()
    assert payload['error'] == 'invalid_data'
    assert payload['details']['criterion'] == 'Innovation'
    assert Score.query.count() == 0
    assert project_state(seed.projects[0].id) == (None, 'submitted')


def test_finalize_locks_the_score(seed):
    project = seed.projects[0]
    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(8))
    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(6))

    result = finalize_score(seed.judge1, project.id)
    assert result.total_score == 8.0
    assert result.is_draft is False
    assert project_state(project.id) == (7.0, 'reviewed')
    assert Score.query.filter_by(project_id=project.id, judge_id=seed.judge1.id).one().sync_status == 'finalized'

    # Повторная фиксация ничего не меняет
    assert finalize_score(seed.judge1, project.id).score_id == result.score_id

    before = snapshot()
    for is_draft in (False, True):
        with pytest.raises(PreconditionError) as exc:
            submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(2), is_draft=is_draft)
        assert exc.value.code == 'score_finalized'
    assert snapshot() == before

    # Зафиксированная оценка продолжает участвовать в среднем
    submit_score(seed.judge2, project.id, seed.hackathon.id, uniform_scores(10))
    assert project_state(project.id) == (9.0, 'reviewed')


def test_finalized_row_survives_a_direct_upsert(seed):
    project = seed.projects[1]
    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(8))
    finalize_score(seed.judge1, project.id)

    score = logic.upsert_score(project.id, seed.judge1.id, {'innovation': 1}, 1.0, None, 'pending')
    assert score.sync_status == 'finalized'
    assert score.total_score == 8.0
    db.session.rollback()


def test_finalize_requires_a_submitted_score(seed):
    project = seed.projects[0]
    with pytest.raises(NotFoundError) as exc:
        finalize_score(seed.judge1, project.id)
    assert exc.value.code == 'score_not_found'

    submit_score(seed.judge1, project.id, seed.hackathon.id, uniform_scores(5), is_draft=True)
    with pytest.raises(PreconditionError) as exc:
        finalize_score(seed.judge1, project.id)
    assert exc.value.code == 'score_is_draft'
    assert project_state(project.id) == (None, 'submitted')


def test_finalize_checks_role_and_assignment(seed):
    project = seed.projects[0]
    with pytest.raises(AuthorizationError) as exc:
        finalize_score(seed.participant, project.id)
    assert exc.value.code == 'insufficient_permissions'

    with pytest.raises(AuthorizationError) as exc:
        finalize_score(seed.outsider, project.id)
    assert exc.value.code == 'not_assigned'

    with pytest.raises(NotFoundError) as exc:
        finalize_score(seed.judge1, 9999)
    assert exc.value.code == 'project_not_found'

    with pytest.raises(PreconditionError) as exc:
        finalize_score(seed.judge1, seed.draft_project.id)
    assert exc.value.code == 'hackathon_not_active'


def test_finalize_endpoint(client, seed):
    project = seed.projects[0]
    login(client, seed.judge2)
    client.post('/judging/score', json={
        'projectId': project.id,
        'hackathonId': seed.hackathon.id,
        'scores': uniform_scores(6),
    })

    response = client.post(f'/judging/score/{project.id}/finalize')
    assert response.status_code == 200
    assert response.get_json()['data']['totalScore'] == 6.0

    response = client.post('/judging/score', json={
        'projectId': project.id,
        'hackathonId': seed.hackathon.id,
        'scores': uniform_scores(9),
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'score_finalized'

    response = client.post(f'/judging/score/{seed.projects[1].id}/finalize')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'score_not_found'
