# progress.py
# Прогресс судей по назначениям и сводные результаты хакатона. Все считается заново на каждый запрос.

import statistics

from sqlalchemy.orm import joinedload

from criteria import effective_criteria, load_hackathon
from errors import AuthorizationError
from logic import round_half_up
from models import JudgeAssignment, Project, Score
from models.score import SYNC_DRAFT
from permissions import has_capability, is_elevated, is_organizer

RECENT_SCORES_LIMIT = 5
RESULT_PROJECT_STATUSES = ('submitted', 'reviewed', 'winner')
RESULT_SORT_FIELDS = ('totalScore', 'title', 'scoreCount', 'submittedAt')


def completion_rate(done, total):
    """Целый процент с округлением половины вверх: 1 из 3 -> 33, 2 из 3 -> 67. Пустой список дает 0."""
    if total <= 0:
        return 0
    return (done * 200 + total) // (2 * total)


def _assignment_progress(assignment):
    project_ids = assignment.assigned_project_ids
    projects = []
    if project_ids:
        found = Project.query.filter(
            Project.id.in_(project_ids),
            Project.hackathon_id == assignment.hackathon_id,
        ).all()
        by_id = {p.id: p for p in found}
        # Сохраняем порядок из назначения
        seen = set()
        for pid in project_ids:
            if pid in by_id and pid not in seen:
                projects.append(by_id[pid])
                seen.add(pid)

    scores = []
    if projects:
        scores = Score.query.filter(
            Score.judge_id == assignment.user_id,
            Score.project_id.in_([p.id for p in projects]),
        ).all()
    scored_ids = {s.project_id for s in scores}

    completed = [p for p in projects if p.id in scored_ids]
    pending = [p for p in projects if p.id not in scored_ids]
    recent = sorted(scores, key=lambda s: (s.updated_at or s.created_at, s.id), reverse=True)[:RECENT_SCORES_LIMIT]

    return {
        'id': assignment.id,
        'hackathon': assignment.hackathon.to_dict(),
        'judge': assignment.user.to_dict(),
        'role': assignment.role,
        'expertise': assignment.expertise or [],
        'assignedProjects': [
            dict(p.to_dict(), isScored=p.id in scored_ids) for p in projects
        ],
        'scoringProgress': {
            'total': len(projects),
            'completed': len(completed),
            'pending': len(pending),
            'completionRate': completion_rate(len(completed), len(projects)),
        },
        'recentScores': [
            {
                'projectId': s.project_id,
                'totalScore': s.total_score,
                'isDraft': s.is_draft,
                'comments': s.comments,
                'updatedAt': (s.updated_at or s.created_at).isoformat() if (s.updated_at or s.created_at) else None,
            }
            for s in recent
        ],
    }


def get_assignments(user, hackathon_id=None, judge_id=None):
    if not has_capability(user, 'assignments.view'):
        raise AuthorizationError('Назначения доступны только судьям, модераторам и администраторам.')

    can_view_all = has_capability(user, 'assignments.view_all')
    # Обычный судья всегда видит только свои назначения
    effective_judge_id = judge_id if can_view_all and judge_id is not None else user.id

    query = JudgeAssignment.query.filter_by(user_id=effective_judge_id).options(
        joinedload(JudgeAssignment.hackathon),
        joinedload(JudgeAssignment.user),
    )
    if hackathon_id is not None:
        query = query.filter_by(hackathon_id=hackathon_id)
    assignments = [
        _assignment_progress(a)
        for a in query.order_by(JudgeAssignment.created_at.desc(), JudgeAssignment.id.desc()).all()
    ]

    total_projects = sum(a['scoringProgress']['total'] for a in assignments)
    completed_projects = sum(a['scoringProgress']['completed'] for a in assignments)
    return {
        'assignments': assignments,
        'summary': {
            'totalAssignments': len(assignments),
            'totalProjects': total_projects,
            'completedProjects': completed_projects,
            'pendingProjects': total_projects - completed_projects,
            'overallProgress': completion_rate(completed_projects, total_projects),
        },
        'canViewAll': can_view_all,
    }


def _project_scoring(scores, criteria):
    if not scores:
        return {
            'totalScore': 0,
            'averageScore': 0,
            'scoreCount': 0,
            'maxScore': 0,
            'minScore': 0,
            'standardDeviation': 0,
            'categoryAverages': {},
            'scores': [],
            'isComplete': False,
        }

    totals = [s.total_score or 0 for s in scores]
    average = statistics.fmean(totals)

    category_averages = {}
    for criterion in criteria:
        values = [
            s.criterion_scores[criterion.key]
            for s in scores
            if isinstance(s.criterion_scores, dict) and s.criterion_scores.get(criterion.key) is not None
        ]
        category_averages[criterion.key] = round_half_up(statistics.fmean(values), 2) if values else 0

    return {
        'totalScore': round_half_up(average),
        'averageScore': round_half_up(average),
        'scoreCount': len(scores),
        'maxScore': round_half_up(max(totals)),
        'minScore': round_half_up(min(totals)),
        'standardDeviation': round_half_up(statistics.pstdev(totals), 2),
        'categoryAverages': category_averages,
        'scores': [s.to_dict() for s in scores],
        'isComplete': all(not s.is_draft for s in scores),
    }


def _sort_key(sort_by):
    if sort_by == 'title':
        return lambda r: r['project']['title'].casefold()
    if sort_by == 'scoreCount':
        return lambda r: r['scoring']['scoreCount']
    if sort_by == 'submittedAt':
        return lambda r: r['project']['submittedAt'] or ''
    return lambda r: r['scoring']['totalScore']


def get_results(user, hackathon_id, include_drafts=False, sort_by='totalScore', sort_order='desc'):
    """
    Сводная таблица результатов хакатона: статистика по каждому проекту, ранги
    и общий прогресс судейства. Черновики учитываются только по include_drafts.
    """
    hackathon = load_hackathon(hackathon_id)
    if not has_capability(user, 'results.view', hackathon):
        raise AuthorizationError('Результаты доступны организатору, судьям и администраторам.')

    if sort_by not in RESULT_SORT_FIELDS:
        sort_by = 'totalScore'
    sort_order = 'asc' if sort_order == 'asc' else 'desc'

    criteria, _ = effective_criteria(hackathon.id)
    projects = Project.query.filter(
        Project.hackathon_id == hackathon.id,
        Project.status.in_(RESULT_PROJECT_STATUSES),
    ).order_by(Project.id).all()

    results = []
    for project in projects:
        query = Score.query.filter_by(project_id=project.id).options(joinedload(Score.judge))
        if not include_drafts:
            query = query.filter(Score.sync_status != SYNC_DRAFT)
        scores = query.order_by(Score.id).all()
        results.append({'project': project.to_dict(), 'scoring': _project_scoring(scores, criteria)})

    results.sort(key=_sort_key(sort_by), reverse=(sort_order == 'desc'))
    for rank, result in enumerate(results, start=1):
        result['scoring']['rank'] = rank

    judges_count = JudgeAssignment.query.filter_by(hackathon_id=hackathon.id).count()
    completed = [r for r in results if r['scoring']['isComplete']]
    average_overall = (
        sum(r['scoring']['totalScore'] for r in completed) / len(completed) if completed else 0
    )

    return {
        'hackathon': hackathon.to_dict(),
        'results': results,
        'statistics': {
            'totalProjects': len(results),
            'scoredProjects': len([r for r in results if r['scoring']['scoreCount'] > 0]),
            'completedProjects': len(completed),
            'totalJudges': judges_count,
            'averageOverallScore': round_half_up(average_overall),
            'scoringProgress': completion_rate(len(completed), len(results)),
        },
        'metadata': {'sortBy': sort_by, 'sortOrder': sort_order, 'includeDrafts': include_drafts},
        'permissions': {
            'canViewAll': is_organizer(user, hackathon) or is_elevated(user),
            'isOrganizer': is_organizer(user, hackathon),
        },
    }
