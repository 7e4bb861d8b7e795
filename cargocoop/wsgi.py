"""
WSGI config for cargocoop project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "cargocoop.settings")

application = get_wsgi_application()
