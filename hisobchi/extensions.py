# hisobchi/extensions.py
# Extension singletons; bound to the app inside create_app().

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()
