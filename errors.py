# errors.py
# Ошибки движка оценок. Бросаются в логике, в JSON-ответ превращаются обработчиком в app.py


class JudgingError(Exception):
    status_code = 400
    code = 'judging_error'

    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self):
        payload = {'success': False, 'error': self.code, 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class AuthenticationError(JudgingError):
    status_code = 401
    code = 'unauthenticated'


class AuthorizationError(JudgingError):
    status_code = 403
    code = 'insufficient_permissions'


class NotFoundError(JudgingError):
    status_code = 404
    code = 'not_found'


class PreconditionError(JudgingError):
    status_code = 400
    code = 'precondition_failed'


class ValidationError(JudgingError):
    status_code = 400
    code = 'invalid_data'

    def __init__(self, message, code=None, criterion=None, details=None):
        details = dict(details or {})
        if criterion is not None:
            details['criterion'] = criterion
        super().__init__(message, code=code, details=details)
        self.criterion = criterion


class PersistenceError(JudgingError):
    status_code = 500
    code = 'persistence_error'
