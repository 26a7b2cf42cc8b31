"""Request identity extraction and the edit-privilege guard."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from orgboard.core.config import Settings, get_settings


@dataclass(frozen=True)
class RequestUserContext:
    """Request actor resolved from trusted proxy headers."""

    microsoft_oid: str
    email: str
    display_name: str
    is_admin: bool

    @property
    def can_edit(self) -> bool:
        """Only admins may edit or reassign."""

        return self.is_admin


def _require_identity_headers(
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> tuple[str, str, str]:
    if not x_ms_oid or not x_ms_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-MS-OID and X-MS-EMAIL or enable development principal fallback."
            ),
        )

    display_name = x_ms_display_name or x_ms_email
    return x_ms_oid.strip(), x_ms_email.strip().lower(), display_name.strip()


def resolve_user_context(
    settings: Settings,
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> RequestUserContext:
    if not (x_ms_oid and x_ms_email) and settings.auth_allow_dev_principal:
        email = settings.auth_dev_email.strip().lower()
        return RequestUserContext(
            microsoft_oid=settings.auth_dev_microsoft_oid.strip(),
            email=email,
            display_name=settings.auth_dev_display_name.strip(),
            is_admin=settings.auth_dev_is_admin or email in settings.admin_emails,
        )

    oid, email, display_name = _require_identity_headers(x_ms_oid, x_ms_email, x_ms_display_name)
    return RequestUserContext(oid, email, display_name, is_admin=email in settings.admin_emails)


def get_current_user_context(
    x_ms_oid: str | None = Header(default=None, alias="X-MS-OID"),
    x_ms_email: str | None = Header(default=None, alias="X-MS-EMAIL"),
    x_ms_display_name: str | None = Header(default=None, alias="X-MS-DISPLAY-NAME"),
) -> RequestUserContext:
    """Resolve the current request user.

    Header strategy:
    - Current phase: trusted headers from proxy / test clients.
    - Admin flag: email listed in ``ADMIN_EMAILS`` (or the dev principal flag).
    """

    return resolve_user_context(get_settings(), x_ms_oid, x_ms_email, x_ms_display_name)


def require_editor(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
    """Dependency requiring the edit privilege."""

    if not context.can_edit:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions for this operation.",
        )
    return context
