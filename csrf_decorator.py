from functools import wraps
from flask import request, jsonify, current_app
from flask_wtf.csrf import validate_csrf
from wtforms import ValidationError


def csrf_protected(f):
    """Vérifie le header X-CSRF-Token des formulaires publics (RSVP invité).

    Désactivé quand WTF_CSRF_ENABLED est faux (tests).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config.get('WTF_CSRF_ENABLED', True):
            try:
                validate_csrf(request.headers.get('X-CSRF-Token'))
            except ValidationError:
                return jsonify({'error': 'CSRF validation failed'}), 400
        return f(*args, **kwargs)
    return decorated_function
