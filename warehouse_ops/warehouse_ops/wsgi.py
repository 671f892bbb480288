"""
WSGI config for the warehouse_ops project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'warehouse_ops.settings')

application = get_wsgi_application()
