"""
Flask extensions shared by the tea shop backend.

Instantiated unbound here and attached to the app in create_app().
"""
from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Relational store for config overrides and members
db = SQLAlchemy()

# Alembic migrations (flask db upgrade)
migrate = Migrate()

# Storefront and admin console front-ends
cors = CORS()
