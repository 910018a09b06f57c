"""
CLI de Flask con la app de wsgi.py:
    python manage.py run
    python manage.py db upgrade
"""

import os

from flask.cli import main

if __name__ == "__main__":
    os.environ.setdefault("FLASK_APP", "wsgi.py")
    main()
