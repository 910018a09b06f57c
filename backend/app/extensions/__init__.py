from .db import db
from .migrate import migrate
from .jwt import jwt
from .ma import ma
from .dispatcher import dispatcher

__all__ = ["db", "migrate", "jwt", "ma", "dispatcher"]
