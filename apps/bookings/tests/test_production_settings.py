"""Production settings refuse to start with an open payment webhook."""

import importlib
import os
import sys
from unittest import mock

import pytest
from django.core.exceptions import ImproperlyConfigured

from config.settings import base

PROD = "config.settings.prod"


def _load_prod(**env):
    try:
        with mock.patch.dict(os.environ, {"DJANGO_SECRET_KEY": "a-real-production-secret-key", **env}):
            if "PAYMENT_WEBHOOK_SECRET" not in env:
                os.environ.pop("PAYMENT_WEBHOOK_SECRET", None)
            importlib.reload(base)
            sys.modules.pop(PROD, None)
            return importlib.import_module(PROD)
    finally:
        sys.modules.pop(PROD, None)
        importlib.reload(base)


def test_missing_webhook_secret_is_rejected():
    with pytest.raises(ImproperlyConfigured, match="PAYMENT_WEBHOOK_SECRET"):
        _load_prod()


def test_configured_webhook_secret_is_accepted():
    prod = _load_prod(PAYMENT_WEBHOOK_SECRET="whsec_live")

    assert prod.PAYMENT_WEBHOOK_SECRET == "whsec_live"
