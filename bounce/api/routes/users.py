"""
User endpoints: self-registration and public lookup.

Users live at ``/ming.users``; ``/bounce.users`` answers the same requests.
Links and ``Location`` always use the canonical path.
"""

from fastapi import APIRouter, Request, Response, status
from pydantic import ValidationError

from bounce.api.deps import Identity, JsonObject
from bounce.api.hal import Embedded, link, represent
from bounce.errors import BadRequest
from bounce.kernel.paths import LEGACY_USERS_COLLECTION, USERS_COLLECTION, join
from bounce.schemas.auth import UserCreate

router = APIRouter()

USERS_PATH = join(USERS_COLLECTION)
LEGACY_USERS_PATH = join(LEGACY_USERS_COLLECTION)


def _user_links(username: str) -> dict:
    return {"self": link(join(USERS_COLLECTION, username))}


@router.get(USERS_PATH)
@router.get(LEGACY_USERS_PATH, include_in_schema=False)
async def list_users(
    request: Request,
    identity: Identity,
):
    """List registered users."""
    users = await identity.list_users()
    return represent(
        request,
        {},
        {"self": link(USERS_PATH)},
        Embedded("users", users, lambda user: _user_links(user["username"])),
    )


@router.post(USERS_PATH, status_code=status.HTTP_201_CREATED)
@router.post(LEGACY_USERS_PATH, status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def register(
    body: JsonObject,
    identity: Identity,
):
    """
    Register a new user account.

    No credentials are needed; the password is never returned.
    """
    try:
        data = UserCreate.model_validate(body)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise BadRequest(problems)

    username = await identity.register_user(data)
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": join(USERS_COLLECTION, username)},
    )


@router.get(USERS_PATH + "/{username}")
@router.get(LEGACY_USERS_PATH + "/{username}", include_in_schema=False)
async def get_user(
    request: Request,
    username: str,
    identity: Identity,
):
    """Read a user by username."""
    user = await identity.get_user(username)
    return represent(request, user, _user_links(username))
