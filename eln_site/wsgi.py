"""
WSGI config for the ELN project.
"""

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'eln_site.settings')
application = get_wsgi_application()
