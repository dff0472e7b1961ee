# permissions.py
# Единая проверка прав: вместо списков ролей, разбросанных по маршрутам

from models.user import ROLE_JUDGE, ROLE_MODERATOR, ROLE_ADMIN

ELEVATED_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})
JUDGING_ROLES = frozenset({ROLE_JUDGE, ROLE_MODERATOR, ROLE_ADMIN})

# Действие -> роли, которым оно разрешено без дополнительных условий
CAPABILITIES = {
    'criteria.view': None,  # любой вошедший пользователь
    'criteria.view_inactive': ELEVATED_ROLES,
    'criteria.manage': ELEVATED_ROLES,
    'score.submit': JUDGING_ROLES,
    'score.bypass_assignment': ELEVATED_ROLES,
    'assignments.view': JUDGING_ROLES,
    'assignments.view_all': ELEVATED_ROLES,
    'results.view': JUDGING_ROLES,
}

# Действия, которые организатор хакатона может выполнять независимо от роли
ORGANIZER_ACTIONS = frozenset({'criteria.view_inactive', 'criteria.manage', 'results.view'})


def is_elevated(user):
    return user is not None and user.role in ELEVATED_ROLES


def is_organizer(user, hackathon):
    return user is not None and hackathon is not None and hackathon.organizer_id == user.id


def has_capability(user, action, hackathon=None):
    """
    Проверяет, может ли пользователь выполнить действие.
    Для действий из ORGANIZER_ACTIONS передайте hackathon, чтобы учесть организатора.
    """
    if user is None:
        return False
    if action not in CAPABILITIES:
        raise KeyError(f'Неизвестное действие: {action}')

    allowed_roles = CAPABILITIES[action]
    if allowed_roles is None or user.role in allowed_roles:
        return True
    return action in ORGANIZER_ACTIONS and is_organizer(user, hackathon)
