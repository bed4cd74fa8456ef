from fastapi import Header, Request

from esg_lite.api.errors import AuthenticationRequiredError
from esg_lite.container import Container
from esg_lite.documents.models import UserContext


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_user(
    x_user_id: str | None = Header(default=None),
    x_organization_id: str | None = Header(default=None),
) -> UserContext:
    """Caller identity from the headers set by the auth gateway."""
    if not x_user_id:
        raise AuthenticationRequiredError("Authentication required")
    return UserContext.from_headers(x_user_id, x_organization_id)
