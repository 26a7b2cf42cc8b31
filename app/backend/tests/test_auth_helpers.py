from __future__ import annotations

import pytest
from fastapi import HTTPException

from orgboard.core.auth import RequestUserContext, require_editor, resolve_user_context
from orgboard.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_headers_take_precedence_and_are_normalized() -> None:
    context = resolve_user_context(_settings(), " oid-1 ", " Jane.Doe@Test.Local ", None)

    assert context.microsoft_oid == "oid-1"
    assert context.email == "jane.doe@test.local"
    assert context.display_name == "Jane.Doe@Test.Local"
    assert not context.is_admin


def test_admin_flag_comes_from_admin_emails() -> None:
    settings = _settings(admin_emails="Boss@Test.Local, other@test.local")

    context = resolve_user_context(settings, "oid-2", "boss@test.local", "Boss")

    assert settings.admin_emails == ["boss@test.local", "other@test.local"]
    assert context.is_admin
    assert context.can_edit


def test_dev_principal_fallback() -> None:
    context = resolve_user_context(_settings(auth_dev_is_admin=False), None, None, None)

    assert context.email == "dev.user@local.test"
    assert not context.is_admin


def test_missing_headers_without_fallback_is_unauthorized() -> None:
    with pytest.raises(HTTPException) as exc_info:
        resolve_user_context(_settings(auth_allow_dev_principal=False), None, "x@test.local", None)

    assert exc_info.value.status_code == 401


def test_require_editor_rejects_viewers() -> None:
    viewer = RequestUserContext("oid", "viewer@test.local", "Viewer", is_admin=False)
    admin = RequestUserContext("oid", "admin@test.local", "Admin", is_admin=True)

    with pytest.raises(HTTPException) as exc_info:
        require_editor(viewer)

    assert exc_info.value.status_code == 403
    assert require_editor(admin) is admin
