"""
Tests that the URLconf and the DRF authentication classes load in a fresh
interpreter, in both import orders.
"""
import os
import subprocess
import sys
from pathlib import Path

import pytest
from django.urls import resolve

ROOT = Path(__file__).resolve().parents[3]


def run_fresh(code):
    env = dict(os.environ, DJANGO_SETTINGS_MODULE='config.settings_test')
    return subprocess.run(
        [sys.executable, '-c', f'import django; django.setup(); {code}'],
        cwd=ROOT, env=env, capture_output=True, text=True, timeout=120,
    )


@pytest.mark.parametrize('code', [
    'import config.urls',
    'import rest_framework.views; import apps.core.authentication',
    'import apps.core.authentication; import apps.core.exceptions; import config.urls',
])
def test_fresh_import(code):
    result = run_fresh(code)

    assert result.returncode == 0, result.stderr


def test_routes_resolve():
    assert resolve('/v1/auth/login').func.view_class.__name__ == 'LoginView'
    assert resolve('/v1/access-requests').func.view_class.__name__ == 'AccessRequestListView'
