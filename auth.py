import functools

from flask import abort, current_app
from flask_login import LoginManager, UserMixin, current_user

from models import Client, Designer, db

login_manager = LoginManager()


class AdminUser(UserMixin):
    """Admin session holder; the only admin is ADMIN_EMAIL"""

    role = 'admin'

    def __init__(self, email):
        self.email = email

    def get_id(self):
        return f'admin:{self.email}'


@login_manager.user_loader
def load_user(user_id):
    role, _, ident = user_id.partition(':')

    if role == 'client' and ident.isdigit():
        return db.session.get(Client, int(ident))
    if role == 'designer' and ident.isdigit():
        return db.session.get(Designer, int(ident))
    if role == 'admin' and ident == current_app.config['ADMIN_EMAIL']:
        return AdminUser(ident)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    abort(401, description='Unauthorized')


def role_required(role, message):
    def decorator(view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated or getattr(current_user, 'role', None) != role:
                abort(401, description=message)
            return view(*args, **kwargs)
        return wrapper
    return decorator


client_required = role_required('client', 'Please log in as a client')
designer_required = role_required('designer', 'Please log in as a designer')
admin_required = role_required('admin', 'Unauthorized')
