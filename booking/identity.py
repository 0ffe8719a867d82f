# booking/identity.py
#
# Purpose:
# - Turn the identity provider's forwarded headers into an Actor and expose
#   it as request.user for DRF.
# - Permissions used by every viewset.
#
# Headers (set by the gateway after it authenticated the caller):
#   X-Business-Id  (required)   tenant the caller acts in
#   X-Actor-Role   client | staff | admin   (default: client)
#   X-Staff-Id     staff primary key, for staff callers
#   X-Client-Id    client primary key, for client callers
#
# Notes for developers:
# - This service trusts those headers; it must only be reachable through the
#   gateway. It never re-derives identity.
#
from dataclasses import dataclass

from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import SAFE_METHODS, BasePermission

from businesses.models import Business

ROLE_CLIENT = "client"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CLIENT, ROLE_STAFF, ROLE_ADMIN)


@dataclass(frozen=True)
class Actor:
    business: Business
    role: str = ROLE_CLIENT
    staff_id: int | None = None
    client_id: int | None = None

    is_authenticated = True

    @property
    def business_id(self) -> int:
        return self.business.pk

    @property
    def is_staff(self) -> bool:
        return self.role in (ROLE_STAFF, ROLE_ADMIN)


def _int_header(request, name):
    raw = (request.headers.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise exceptions.AuthenticationFailed(f"{name} must be an integer.") from None


class TrustedHeaderAuthentication(BaseAuthentication):
    def authenticate(self, request):
        business_id = _int_header(request, "X-Business-Id")
        if business_id is None:
            return None  # anonymous; permissions decide

        business = Business.objects.filter(pk=business_id).first()
        if business is None:
            raise exceptions.AuthenticationFailed("Unknown business.")

        role = (request.headers.get("X-Actor-Role") or ROLE_CLIENT).strip().lower()
        if role not in ROLES:
            raise exceptions.AuthenticationFailed("Unknown role.")

        actor = Actor(
            business=business,
            role=role,
            staff_id=_int_header(request, "X-Staff-Id"),
            client_id=_int_header(request, "X-Client-Id"),
        )
        if role == ROLE_CLIENT and actor.client_id is None:
            raise exceptions.AuthenticationFailed("Client callers must send X-Client-Id.")
        return (actor, None)

    def authenticate_header(self, request):
        return "X-Business-Id"


class IsBusinessMember(BasePermission):
    """
    Any authenticated actor of some business.
    """
    def has_permission(self, request, view):
        return isinstance(request.user, Actor)


class IsStaffOrReadOnly(BasePermission):
    """
    Read: any business member
    Write: staff/admin only
    """
    def has_permission(self, request, view):
        if not isinstance(request.user, Actor):
            return False
        if request.method in SAFE_METHODS:
            return True
        return request.user.is_staff


class IsStaffOnly(BasePermission):
    def has_permission(self, request, view):
        return isinstance(request.user, Actor) and request.user.is_staff
