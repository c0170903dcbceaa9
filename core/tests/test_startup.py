"""
Cold-start checks, run in a child interpreter so nothing already imported by
the test session can hide an import cycle.

- `manage.py check` passes.
- Every DRF setting given as a dotted path resolves, and the URLconf imports.
"""

import os
import subprocess
import sys
from pathlib import Path

from django.test import SimpleTestCase

PROJECT_ROOT = Path(__file__).resolve().parents[2]

RESOLVE_API_SETTINGS = """
import django
django.setup()
from rest_framework.settings import api_settings
for name in ("DEFAULT_PAGINATION_CLASS", "DEFAULT_SCHEMA_CLASS", "EXCEPTION_HANDLER",
             "DEFAULT_AUTHENTICATION_CLASSES", "DEFAULT_PERMISSION_CLASSES",
             "DEFAULT_FILTER_BACKENDS", "DEFAULT_THROTTLE_CLASSES"):
    getattr(api_settings, name)
import backoffice.urls
"""


def run_fresh(*args):
    env = {**os.environ, "DJANGO_SETTINGS_MODULE": "backoffice.settings.dev"}
    return subprocess.run(
        [sys.executable, *args],
        cwd=PROJECT_ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )


class ColdStartTests(SimpleTestCase):

    def test_system_check_passes(self):
        result = run_fresh("manage.py", "check")
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_api_settings_and_urlconf_import(self):
        result = run_fresh("-c", RESOLVE_API_SETTINGS)
        self.assertEqual(result.returncode, 0, result.stderr)
