import os

from django.core.asgi import get_asgi_application

# Served by any ASGI server; the deployment may point DJANGO_SETTINGS_MODULE elsewhere.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "faultline.settings.dev")

application = get_asgi_application()
